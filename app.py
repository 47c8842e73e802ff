import os
import io
import json
import re
import sys
import hashlib
import inspect
import logging
from functools import wraps

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_caching import Cache
from dotenv import load_dotenv
from pydantic import ValidationError

# WSGIMiddleware lets uvicorn (ASGI) serve the Flask (WSGI) app
from uvicorn.middleware.wsgi import WSGIMiddleware

from namescore.adjustment import DEFAULT_HOLISTIC_RATIONALE
from namescore.llm import LLMManager, NameScoreAnalyst
from namescore.numerology import InvalidArgument, calculate_scores, score_label, universal_day_number
from namescore.reports import create_analysis_pdf
from namescore.schemas import AnalysisResult, CoreNumbers

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off')


# Configure logging
log_handlers = [logging.StreamHandler(sys.stdout)]
log_file = os.getenv('LOG_FILE', 'namescore_app.log')
if log_file:
    log_handlers.append(logging.FileHandler(log_file))
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=log_handlers
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)
logger.info("Flask app instance created.")
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'namescore-secret-key')
app.config['CACHE_TYPE'] = os.getenv('CACHE_TYPE', 'SimpleCache')
app.config['CACHE_DEFAULT_TIMEOUT'] = int(os.getenv('CACHE_DEFAULT_TIMEOUT', 300))
app.config['RATELIMIT_ENABLED'] = _env_flag('RATELIMIT_ENABLED')

# Initialize extensions (cache and limiter)
cache = Cache(app)
limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=["200 per day", "50 per hour"],
    storage_uri=os.getenv('REDIS_URL', 'memory://')
)
logger.info("Flask-Caching and Flask-Limiter initialized.")

# CORS Configuration
CORS(app, resources={r"/*": {"origins": os.getenv('CORS_ORIGINS', '*')}}, supports_credentials=True)
logger.info("CORS configured for the Flask app.")


# --- Decorators ---
def cached_operation(timeout=3600, unless=None):
    """
    Caches the result of a (possibly async) function by its arguments.
    Results for which ``unless(result)`` is true are returned but not stored.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Unique cache key based on function name and arguments
            key_source = json.dumps([func.__name__, args, sorted(kwargs.items())], default=str)
            cache_key = hashlib.md5(key_source.encode()).hexdigest()

            cached_result = cache.get(cache_key)
            if cached_result is not None:
                logger.info(f"Cache hit for {func.__name__}")
                return cached_result

            if inspect.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = func(*args, **kwargs)

            if unless is not None and unless(result):
                logger.info(f"Cache miss for {func.__name__}, result not cached.")
                return result

            cache.set(cache_key, result, timeout=timeout)
            logger.info(f"Cache miss for {func.__name__}, result cached.")
            return result
        return wrapper
    return decorator


# --- Security Manager ---
# Whole statement shapes, so names like "Drop" or "Select" still pass.
SQL_STATEMENT = re.compile(
    r"\b(SELECT\s+.+?\s+FROM|INSERT\s+INTO|UPDATE\s+\w+\s+SET|DELETE\s+FROM|DROP\s+(TABLE|DATABASE))\b",
    re.IGNORECASE,
)


class SecurityManager:
    @staticmethod
    def validate_input_security(input_string) -> bool:
        """
        Rejects input carrying markup tags or SQL statements.
        Non-string values are left to the engine's own validation.
        """
        if not isinstance(input_string, str):
            return True
        if re.search(r'<(script|iframe|img|link|style).*?>', input_string, re.IGNORECASE) or \
           SQL_STATEMENT.search(input_string):
            return False
        return True


llm_manager = LLMManager()
analyst = NameScoreAnalyst.from_manager(llm_manager)
logger.info(f"NameScore initialized (generative analysis {'enabled' if llm_manager.available else 'disabled'}).")


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _insecure_fields(data, fields):
    return [field for field in fields if not SecurityManager.validate_input_security(data.get(field))]


def _is_fallback_analysis(result):
    return result["holistic_rationale"] == DEFAULT_HOLISTIC_RATIONALE


@cached_operation(timeout=3600, unless=_is_fallback_analysis)
async def run_name_analysis(name, birthdate, goal, mode):
    result = await analyst.analyze_name(name, birthdate, goal, mode)
    return result.model_dump(by_alias=True)


# --- Flask Routes ---
@app.route('/')
def home():
    """Basic home route for health check."""
    return jsonify({"status": "ok", "service": "namescore", "generative_analysis": llm_manager.available})


@app.route('/calculate', methods=['POST'])
@limiter.limit("60 per minute")
def calculate_endpoint():
    """Deterministic numerology only: no generative adjustment."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "No data provided."}), 400
    if _insecure_fields(data, ('name', 'birthdate')):
        return jsonify({"error": "Input contains disallowed content."}), 400

    try:
        result = calculate_scores(data.get('name'), data.get('birthdate'))
    except InvalidArgument as e:
        logger.error(f"Calculation rejected: {e}")
        return jsonify({"error": str(e)}), 400

    response = result.model_dump(by_alias=True)
    response['score_label'] = score_label(result.score)
    return jsonify(response), 200


@app.route('/analyze_name', methods=['POST'])
@limiter.limit("10 per minute")
async def analyze_name_endpoint():
    logger.info("analyze_name endpoint triggered")
    data = _json_body()
    if data is None:
        return jsonify({"error": "The request must carry a JSON object."}), 400
    if _insecure_fields(data, ('name', 'birthdate', 'goal', 'mode')):
        return jsonify({"error": "Input contains disallowed content."}), 400

    try:
        result = await run_name_analysis(data.get('name'), data.get('birthdate'), data.get('goal'), data.get('mode'))
        return jsonify(result), 200
    except InvalidArgument as e:
        logger.error(f"Name analysis rejected: {e}")
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error analyzing name: {e}", exc_info=True)
        return jsonify({"error": "An internal server error occurred while analyzing the name. Please try again later."}), 500


@app.route('/analyze_compatibility', methods=['POST'])
@limiter.limit("10 per minute")
async def analyze_compatibility_endpoint():
    logger.info("analyze_compatibility endpoint triggered")
    data = _json_body()
    if data is None:
        return jsonify({"error": "The request must carry a JSON object."}), 400
    if _insecure_fields(data, ('name1', 'birthdate1', 'name2', 'birthdate2')):
        return jsonify({"error": "Input contains disallowed content."}), 400

    try:
        result = await analyst.analyze_compatibility(
            data.get('name1'), data.get('birthdate1'),
            data.get('name2'), data.get('birthdate2'),
        )
        return jsonify(result.model_dump()), 200
    except InvalidArgument as e:
        logger.error(f"Compatibility analysis rejected: {e}")
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error analyzing compatibility: {e}", exc_info=True)
        return jsonify({"error": "An internal server error occurred while analyzing compatibility. Please try again later."}), 500


@app.route('/daily_insight', methods=['POST'])
@limiter.limit("30 per minute")
async def daily_insight_endpoint():
    """
    Daily insight for a user. Takes either precomputed ``core_numbers`` or a
    ``name`` (and optional ``birthdate``) to compute them from.
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "The request must carry a JSON object."}), 400
    if _insecure_fields(data, ('user_name', 'name', 'birthdate')):
        return jsonify({"error": "Input contains disallowed content."}), 400

    try:
        if data.get('core_numbers') is not None:
            core_numbers = CoreNumbers.model_validate(data['core_numbers'])
        else:
            core_numbers = calculate_scores(data.get('name'), data.get('birthdate')).core_numbers
    except InvalidArgument as e:
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        logger.error(f"Invalid core numbers for daily insight: {e}")
        return jsonify({"error": "Invalid 'core_numbers'."}), 400

    user_name = data.get('user_name') or data.get('name') or "Friend"
    insight = await analyst.daily_insight(user_name, core_numbers)
    return jsonify({"insight": insight, "universal_day_number": universal_day_number()}), 200


@app.route('/generate_pdf_report', methods=['POST'])
@limiter.limit("5 per hour")
async def generate_pdf_report_endpoint():
    """
    Endpoint to generate and return a PDF numerology report.
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "The request must carry a JSON object."}), 400
    if _insecure_fields(data, ('name', 'birthdate', 'goal', 'mode')):
        return jsonify({"error": "Input contains disallowed content."}), 400

    try:
        analysis = await run_name_analysis(data.get('name'), data.get('birthdate'), data.get('goal'), data.get('mode'))
        name = data['name'].strip()
        pdf_bytes = create_analysis_pdf(AnalysisResult.model_validate(analysis), name)

        filename = f"Numerology_Report_{name.replace(' ', '_')}.pdf"
        return send_file(
            io.BytesIO(pdf_bytes),
            mimetype='application/pdf',
            as_attachment=True,
            download_name=filename
        )
    except InvalidArgument as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error generating PDF report: {e}", exc_info=True)
        return jsonify({"error": "Failed to generate PDF report."}), 500


# Error handlers
@app.errorhandler(400)
def bad_request(error):
    logger.error(f"Bad Request: {error}")
    return jsonify({"error": "Bad Request: " + str(error.description)}), 400


@app.errorhandler(404)
def not_found(error):
    logger.error(f"Not Found: {error}")
    return jsonify({"error": "Not Found: The requested URL was not found on the server."}), 404


@app.errorhandler(429)
def rate_limited(error):
    logger.warning(f"Rate limit exceeded: {error}")
    return jsonify({"error": f"Too Many Requests: {error.description}"}), 429


@app.errorhandler(500)
def internal_server_error(error):
    logger.error(f"Internal Server Error: {error}", exc_info=True)
    return jsonify({"error": "Internal Server Error: The server encountered an internal error and was unable to complete your request. Please try again later."}), 500


# This is the WSGI application that Uvicorn will serve.
asgi_app = WSGIMiddleware(app)

if __name__ == '__main__':
    # uvicorn app:asgi_app --host 0.0.0.0 --port 8000
    app.run(debug=_env_flag('FLASK_DEBUG', False), host='0.0.0.0', port=int(os.getenv('PORT', 5000)))

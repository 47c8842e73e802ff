import asyncio
import datetime
import json
import logging
import os
from typing import List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.output_parsers import JsonOutputParser, StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI

from .adjustment import (
    HOLISTIC_TOLERANCE,
    fallback_holistic_analysis,
    filter_name_suggestions,
    parse_compatibility_payload,
    parse_holistic_payload,
)
from .compatibility import analyze_pair
from .numerology import calculate_scores, score_label, universal_day_number
from .schemas import (
    AnalysisResult,
    CompatibilityInsight,
    CompatibilityResult,
    CoreNumbers,
    HolisticAnalysis,
    NameSuggestion,
    NameSuggestionsOutput,
    NumerologyScore,
    normalize_goal,
    normalize_mode,
)

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_MODEL = "gemini-2.5-pro"
DEFAULT_FAST_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 2

DEFAULT_DAILY_INSIGHT = (
    "Today is a great day to focus on your strengths and set a positive intention. "
    "Embrace the opportunities that come your way."
)

# --- PROMPTS ---
HOLISTIC_SYSTEM_PROMPT = """You are NameScore, a sophisticated AI blending ancient numerology with modern linguistic and phonetic analysis. Your task is to provide a holistic name evaluation.

You will be given a base score calculated from pure numerology. Your job is to refine this score into a final 'holistic_score'. This adjustment should be based on factors like:
- The name's phonetic appeal (is it pleasant to say?).
- Memorability and distinctiveness.
- How well it aligns with the user's stated goal (e.g., a name for 'Career Growth' should sound strong and professional).
- Modern branding considerations (for brand names).

## RULES:
1. The final 'holistic_score' MUST NOT deviate more than {tolerance} points (up or down) from the 'baseScore'.
2. Provide a 'holistic_rationale' explaining EXACTLY why you adjusted the score (or why you kept it the same).
3. The 'short_rationale' should summarize the overall feeling of the final 'holistic_score'.
4. Provide 'positive_traits' and 'challenges' based on the complete analysis (numerology + linguistics).
5. ALWAYS RETURN a single, valid JSON object that adheres to the schema.

{format_instructions}"""

HOLISTIC_HUMAN_PROMPT = """Perform a holistic analysis for the following user data:
- Name: {name}
- Intent: {mode}
- Birthdate: {birthdate}
- Goal: {goal}
- Base Numerology Score: {base_score}
- Base Numerology Breakdown: {breakdown}
- Base Core Numbers: {core_numbers}"""

NAME_SUGGESTION_SYSTEM_PROMPT = """You are a highly creative numerology and branding expert. Your task is to generate 10 subtle, phonetically distinct variations of a given name. The goal is to improve its numerological score.

## KEY REQUIREMENTS:
1. **Contextual relevance:** The suggestions should align with the user's stated goal.
2. **Quantifiable improvement:** Each suggestion's 'new_score' MUST be higher than the original score.
3. **Phonetic diversity:** The variations should not be just minor spelling changes; they should offer slightly different sounds while retaining the essence of the original name.
4. **Concise rationale:** The 'reason' for each suggestion should be brief and compelling, explaining the numerological benefit.
5. **Output format:** Return a JSON object whose 'suggestions' array holds exactly 10 entries.

{format_instructions}"""

NAME_SUGGESTION_HUMAN_PROMPT = """Generate 10 name suggestions based on the following data:
- Original Name: "{name}"
- Original Score: {score}
- User's Goal: "{goal}"
- Core Numbers: {core_numbers}

Please provide phonetically distinct variations that improve the score and align with the user's goal."""

COMPATIBILITY_SYSTEM_PROMPT = """You are a wise relationship numerologist. Based on the data provided in the prompt, provide a warm, constructive compatibility analysis. Create a catchy 2-4 word "title", highlight "strengths", gently point out "challenges", and write an uplifting "summary". Do not mention scores or numbers directly in your analysis. Return a single, valid JSON object that adheres to the schema.

{format_instructions}"""

COMPATIBILITY_HUMAN_PROMPT = """Provide the compatibility analysis for the following data:
- Person 1: {{ "name": "{name1}", "coreNumbers": {core1} }}
- Person 2: {{ "name": "{name2}", "coreNumbers": {core2} }}
- Calculated Compatibility Score: {score}"""

DAILY_INSIGHT_SYSTEM_PROMPT = """You are a warm, insightful numerology guide. Provide a short (2-3 sentence) personalized "Daily Insight". Connect the user's personal numerology with the energy of today. Be personal, encouraging, and actionable. Return only plain text."""

DAILY_INSIGHT_HUMAN_PROMPT = """Generate the daily insight based on this data:
- User: {user_name}
- Core Numbers: {core_numbers}
- Today's Universal Day Number: {day_number}"""


def _core_numbers_json(core_numbers: CoreNumbers) -> str:
    return json.dumps(core_numbers.model_dump(by_alias=True))


# --- LLM Manager ---
class LLMManager:
    """
    Holds the Gemini chat models used by the analyst.

    A missing GOOGLE_API_KEY leaves the manager unavailable instead of
    failing: every analyst call then falls back to deterministic defaults.
    """

    def __init__(self, api_key: Optional[str] = None):
        self.llm = None
        self.creative_llm = None
        self.analytical_llm = None
        self.timeout = float(os.getenv("NAMESCORE_LLM_TIMEOUT", DEFAULT_TIMEOUT))
        self.max_retries = int(os.getenv("NAMESCORE_LLM_RETRIES", DEFAULT_RETRIES))
        self._initialize_llms(api_key or os.getenv("GOOGLE_API_KEY"))

    @property
    def available(self) -> bool:
        return self.analytical_llm is not None

    def _initialize_llms(self, google_api_key: Optional[str]):
        if not google_api_key:
            logger.error("GOOGLE_API_KEY environment variable not set. Generative analysis is disabled.")
            return

        analysis_model = os.getenv("NAMESCORE_ANALYSIS_MODEL", DEFAULT_ANALYSIS_MODEL)
        fast_model = os.getenv("NAMESCORE_FAST_MODEL", DEFAULT_FAST_MODEL)
        common = dict(google_api_key=google_api_key, timeout=self.timeout, max_retries=self.max_retries)
        try:
            self.llm = ChatGoogleGenerativeAI(model=fast_model, temperature=0.7, **common)
            self.creative_llm = ChatGoogleGenerativeAI(model=fast_model, temperature=0.9, **common)
            self.analytical_llm = ChatGoogleGenerativeAI(model=analysis_model, temperature=0.3, **common)
            logger.info(f"LLM instances initialized ({analysis_model} for analysis, {fast_model} for text).")
        except Exception as e:
            logger.error(f"Failed to initialize LLM instances: {e}", exc_info=True)
            self.llm = self.creative_llm = self.analytical_llm = None


# --- Analyst ---
class NameScoreAnalyst:
    """
    Composes the numerology engine with the generative collaborator.

    The engine runs first and is authoritative. Model calls are independent,
    timeout-bound and never raise: on failure the base score and default
    texts are used instead.
    """

    def __init__(self, analytical_llm: Optional[BaseChatModel] = None,
                 creative_llm: Optional[BaseChatModel] = None,
                 llm: Optional[BaseChatModel] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.analytical_llm = analytical_llm
        self.creative_llm = creative_llm or analytical_llm
        self.llm = llm or analytical_llm
        self.timeout = timeout

    @classmethod
    def from_manager(cls, manager: LLMManager) -> "NameScoreAnalyst":
        return cls(manager.analytical_llm, manager.creative_llm, manager.llm, timeout=manager.timeout)

    async def _invoke(self, llm: BaseChatModel, system: str, human: str, parser):
        prompt = ChatPromptTemplate.from_messages([
            SystemMessage(content=system),
            HumanMessage(content=human),
        ])
        chain = prompt | llm | parser
        return await asyncio.wait_for(chain.ainvoke({}), timeout=self.timeout)

    async def holistic_analysis(self, name: str, base: NumerologyScore, goal: str, mode: str,
                                birthdate: Optional[str] = None) -> HolisticAnalysis:
        if self.analytical_llm is None:
            logger.warning("No analytical LLM configured; using the base score.")
            return fallback_holistic_analysis(base.score)

        parser = JsonOutputParser(pydantic_object=HolisticAnalysis)
        system = HOLISTIC_SYSTEM_PROMPT.format(
            tolerance=HOLISTIC_TOLERANCE,
            format_instructions=parser.get_format_instructions(),
        )
        human = HOLISTIC_HUMAN_PROMPT.format(
            name=name,
            mode=mode,
            birthdate=birthdate or "Not provided",
            goal=goal,
            base_score=base.score,
            breakdown=json.dumps(base.breakdown.model_dump()),
            core_numbers=_core_numbers_json(base.core_numbers),
        )
        try:
            logger.info("Calling LLM for holistic analysis...")
            payload = await self._invoke(self.analytical_llm, system, human, parser)
        except Exception as e:
            logger.error(f"Holistic analysis failed, falling back to base score: {e}", exc_info=True)
            return fallback_holistic_analysis(base.score)

        analysis = parse_holistic_payload(payload, base.score)
        logger.info(f"Holistic analysis complete: base {base.score} -> {analysis.holistic_score}")
        return analysis

    async def name_suggestions(self, name: str, score: int, core_numbers: CoreNumbers, goal: str) -> List[NameSuggestion]:
        if self.creative_llm is None:
            return []

        parser = JsonOutputParser(pydantic_object=NameSuggestionsOutput)
        system = NAME_SUGGESTION_SYSTEM_PROMPT.format(format_instructions=parser.get_format_instructions())
        human = NAME_SUGGESTION_HUMAN_PROMPT.format(
            name=name,
            score=score,
            goal=goal,
            core_numbers=_core_numbers_json(core_numbers),
        )
        try:
            logger.info("Generating name suggestions...")
            payload = await self._invoke(self.creative_llm, system, human, parser)
        except Exception as e:
            logger.error(f"Error generating name suggestions: {e}", exc_info=True)
            return []
        return filter_name_suggestions(payload, score)

    async def compatibility_insight(self, name1: str, core1: CoreNumbers, name2: str, core2: CoreNumbers,
                                    score: int) -> CompatibilityInsight:
        if self.llm is None:
            return parse_compatibility_payload(None)

        parser = JsonOutputParser(pydantic_object=CompatibilityInsight)
        system = COMPATIBILITY_SYSTEM_PROMPT.format(format_instructions=parser.get_format_instructions())
        human = COMPATIBILITY_HUMAN_PROMPT.format(
            name1=name1,
            core1=_core_numbers_json(core1),
            name2=name2,
            core2=_core_numbers_json(core2),
            score=score,
        )
        try:
            payload = await self._invoke(self.llm, system, human, parser)
        except Exception as e:
            logger.error(f"Error in compatibility qualitative analysis: {e}", exc_info=True)
            payload = None
        return parse_compatibility_payload(payload)

    async def daily_insight(self, user_name: str, core_numbers: CoreNumbers,
                            on_date: Optional[datetime.date] = None) -> str:
        if self.llm is None:
            return DEFAULT_DAILY_INSIGHT

        human = DAILY_INSIGHT_HUMAN_PROMPT.format(
            user_name=user_name,
            core_numbers=_core_numbers_json(core_numbers),
            day_number=universal_day_number(on_date),
        )
        try:
            text = await self._invoke(self.llm, DAILY_INSIGHT_SYSTEM_PROMPT, human, StrOutputParser())
        except Exception as e:
            logger.error(f"Error generating daily insight: {e}", exc_info=True)
            return DEFAULT_DAILY_INSIGHT
        return text.strip() or DEFAULT_DAILY_INSIGHT

    async def analyze_name(self, name: str, birthdate: Optional[str] = None, goal: Optional[str] = None,
                           mode: Optional[str] = None) -> AnalysisResult:
        """Base numerology, holistic adjustment and improved name suggestions."""
        base = calculate_scores(name, birthdate)
        goal = normalize_goal(goal)
        mode = normalize_mode(mode)

        holistic = await self.holistic_analysis(name, base, goal, mode, birthdate)
        suggestions = await self.name_suggestions(name, holistic.holistic_score, base.core_numbers, goal)

        return AnalysisResult(
            score=holistic.holistic_score,
            base_score=base.score,
            score_label=score_label(holistic.holistic_score),
            breakdown=base.breakdown,
            core_numbers=base.core_numbers,
            short_rationale=holistic.short_rationale,
            holistic_rationale=holistic.holistic_rationale,
            positive_traits=holistic.positive_traits,
            challenges=holistic.challenges,
            suggestions=suggestions,
        )

    async def analyze_compatibility(self, name1: str, birthdate1: Optional[str], name2: str,
                                    birthdate2: Optional[str]) -> CompatibilityResult:
        pair = analyze_pair(name1, birthdate1, name2, birthdate2)
        insight = await self.compatibility_insight(
            name1, pair.first.core_numbers, name2, pair.second.core_numbers, pair.score,
        )
        return CompatibilityResult(score=pair.score, names=(name1, name2), **insight.model_dump())

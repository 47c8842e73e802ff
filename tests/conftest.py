"""Pytest configuration for NameScore."""

import os

# The app module reads these at import time.
os.environ["RATELIMIT_ENABLED"] = "false"
os.environ["CACHE_TYPE"] = "NullCache"
os.environ["LOG_FILE"] = ""
os.environ.pop("GOOGLE_API_KEY", None)

import json

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from namescore.llm import NameScoreAnalyst


def fake_model(*responses):
    """Chat model that replies with the given payloads in order."""
    return FakeListChatModel(responses=[r if isinstance(r, str) else json.dumps(r) for r in responses])


def make_analyst(*responses):
    return NameScoreAnalyst(fake_model(*responses), timeout=5)


@pytest.fixture
def flask_app():
    import app as app_module

    app_module.app.config.update(TESTING=True)
    return app_module


@pytest.fixture
def client(flask_app):
    return flask_app.app.test_client()

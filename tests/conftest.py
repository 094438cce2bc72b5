"""
Pytest Configuration and Fixtures.

Shared fakes for the provider-backed generators and the HTTP app.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from study_buddy.server.providers import ChatResult  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


class FakeProvider:
    """Stands in for GeminiClient / HerokuAIClient."""

    name = "fake"

    def __init__(self, reply="", error=None, chat_reply="Hello!", usage=None):
        self.reply = reply
        self.error = error
        self.chat_reply = chat_reply
        self.usage = usage
        self.prompts = []
        self.json_modes = []
        self.chats = []

    def generate(self, prompt, json_mode=False):
        self.prompts.append(prompt)
        self.json_modes.append(json_mode)
        if self.error is not None:
            raise self.error
        return self.reply

    def chat(self, messages):
        self.chats.append(list(messages))
        if self.error is not None:
            raise self.error
        return ChatResult(content=self.chat_reply, provider=self.name, usage=self.usage)


@pytest.fixture
def fake_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def schedule_payload():
    return {
        "courses": [
            {"name": "Math", "topics": ["Limits", "Derivatives", "Integrals", "Series"]},
            {"name": "Physics"},
        ],
        "deadlines": [{"course": "Math", "date": "2026-11-02"}],
        "available_hours": 10,
        "priority_subjects": ["Physics"],
    }


@pytest.fixture
def quiz_payload():
    return {
        "extracted_text": "Subject: Physics\nTopic: Kinematics",
        "question_count": 5,
        "difficulty_level": "medium",
        "question_types": ["multiple_choice"],
    }

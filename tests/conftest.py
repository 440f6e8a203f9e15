"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest and provides:
  - Test configuration (env vars set before any src module is imported)
  - Preference fixtures shared by the scoring, graph and API tests
  - A mock Firestore client
"""

import os
import pytest
from unittest.mock import MagicMock

# Config is instantiated when src.config is first imported, which happens
# while test modules are collected, so the environment is set here.
TEST_ENV = {
    "FIREBASE_PROJECT_ID": "test-project",
    "GOOGLE_APPLICATION_CREDENTIALS": "/config/test-serviceAccountKey.json",
    "AI_SERVICE_TOKEN": "",
    "LOG_FILE": "",
    "DEBUG": "True",
}
for _key, _value in TEST_ENV.items():
    os.environ[_key] = _value


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """
    Re-assert the test environment for the whole session.

    Keeps tests independent of local .env files and of tests that patch
    os.environ.
    """
    for key, value in TEST_ENV.items():
        os.environ[key] = value


@pytest.fixture
def full_preferences() -> dict:
    """A completely filled-in preference document (camelCase, as stored)."""
    return {
        "academicYear": "junior",
        "major": "Computer Science",
        "courses": ["CS61A", "CS70"],
        "studyTimePreferences": ["early-morning", "evening"],
        "preferredStudyEnvironments": ["library", "cafe"],
        "learningStyles": ["visual", "reading-writing"],
        "preferredContentTypes": ["midterm-review", "homework"],
        "comfortableDifficultyLevels": ["advanced", "mock-exam"],
        "sessionFrequency": "weekly",
        "commitmentLevel": "serious",
        "preferredGroupSize": 4,
        "introvertExtrovert": 1,
        "focusedCollaborative": 5,
        "availableDays": ["monday", "wednesday"],
        "studyGoals": ["exam-prep", "homework-help"],
    }


@pytest.fixture
def opposite_preferences() -> dict:
    """Preferences that disagree with ``full_preferences`` on every dimension."""
    return {
        "academicYear": "phd",
        "courses": ["MATH1A"],
        "studyTimePreferences": ["afternoon"],
        "preferredStudyEnvironments": ["outdoor"],
        "learningStyles": ["kinesthetic"],
        "preferredContentTypes": ["labs"],
        "comfortableDifficultyLevels": ["beginner"],
        "introvertExtrovert": 5,
        "focusedCollaborative": 1,
        "studyGoals": ["project-collab"],
    }


@pytest.fixture
def user_document(full_preferences) -> dict:
    """A users/{uid} document as stored in Firestore."""
    prefs = {
        key: value
        for key, value in full_preferences.items()
        if key not in ("academicYear", "major")
    }
    return {
        "uid": "user-1",
        "fullName": "Ada Lovelace",
        "email": "ada@berkeley.edu",
        "class": "junior",
        "majors": ["Computer Science", "Mathematics"],
        "matchingPreferences": prefs,
    }


@pytest.fixture
def mock_firestore(monkeypatch):
    """
    Replace the Firestore client with a MagicMock.

    Returns the mock so tests can script collection/document calls.
    """
    from src.tools import firestore_tools

    mock_db = MagicMock()
    monkeypatch.setattr(firestore_tools, "_db", mock_db)
    return mock_db

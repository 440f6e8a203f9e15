"""Firestore wrappers for the preference store.

User documents live in the ``users`` collection and carry the profile fields
shown next to a match (``fullName``, ``email``, ``class``, ``majors``) plus a
nested ``matchingPreferences`` map. These helpers centralize error handling
and logging so graph nodes and routes stay focused on orchestration.
"""

from __future__ import annotations

import os

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.field_path import FieldPath

from src.config import config
from src.utils.errors import FirestoreUnavailableError
from src.utils.logging_config import logger

PROFILE_FIELDS = ("fullName", "email", "class", "majors")
CANDIDATE_PAGE_SIZE = 100

_db: firestore.Client | None = None


def get_db() -> firestore.Client:
    """Get a Firestore client, initializing Firebase lazily."""
    global _db

    if _db is not None:
        return _db

    try:
        if not firebase_admin._apps:
            cred_path = os.environ.get(
                "GOOGLE_APPLICATION_CREDENTIALS", config.GOOGLE_APPLICATION_CREDENTIALS
            )
            if not cred_path:
                raise RuntimeError("GOOGLE_APPLICATION_CREDENTIALS is not set")

            cred = credentials.Certificate(cred_path)
            firebase_admin.initialize_app(
                cred, {"projectId": config.FIREBASE_PROJECT_ID}
            )

        _db = firestore.client()
        return _db

    except Exception as exc:
        logger.error("Failed to initialize Firestore: %s", exc)
        raise FirestoreUnavailableError(str(exc)) from exc


def _users():
    return get_db().collection(config.USERS_COLLECTION)


def profile_fields(doc: dict) -> dict:
    """Pick the display fields joined onto match results."""

    return {field: doc.get(field) for field in PROFILE_FIELDS}


def get_user_document(user_id: str) -> dict | None:
    """Fetch users/{user_id}. Returns None if the user does not exist."""

    try:
        doc = _users().document(user_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data.setdefault("uid", doc.id)
        return data
    except FirestoreUnavailableError:
        raise
    except Exception as exc:
        logger.error("Failed to fetch user document: %s", str(exc))
        raise FirestoreUnavailableError(str(exc)) from exc


def _has_courses(data: dict) -> bool:
    prefs = data.get("matchingPreferences")
    return isinstance(prefs, dict) and bool(prefs.get("courses"))


def get_candidate_documents(exclude_user_id: str, limit: int = 500) -> list[dict]:
    """Query users that have listed at least one course.

    Users without courses, or whose ``matchingPreferences`` is not a map, are
    left out of the population. Firestore cannot query for a non-empty array,
    so that check happens in memory; documents are read in id order, one
    bounded page at a time, until ``limit`` candidates are collected.
    """

    if limit <= 0:
        return []

    page_size = min(limit, CANDIDATE_PAGE_SIZE)
    try:
        query = _users().order_by(FieldPath.document_id()).limit(page_size)
        candidates: list[dict] = []
        read = 0
        while len(candidates) < limit:
            docs = list(query.stream())
            read += len(docs)
            for doc in docs:
                if doc.id == exclude_user_id:
                    continue
                data = doc.to_dict() or {}
                if not _has_courses(data):
                    continue
                data.setdefault("uid", doc.id)
                candidates.append(data)
                if len(candidates) >= limit:
                    break
            if len(docs) < page_size:
                break
            query = query.start_after(docs[-1])

        logger.debug(
            "get_candidate_documents read=%s result=%s", read, len(candidates)
        )
        return candidates
    except FirestoreUnavailableError:
        raise
    except Exception as exc:
        logger.error("Failed to query candidates: %s", str(exc))
        raise FirestoreUnavailableError(str(exc)) from exc


def get_matching_preferences(user_id: str) -> dict | None:
    """Return the stored matchingPreferences map, {} if never set, None if no user."""

    user = get_user_document(user_id)
    if user is None:
        return None
    return user.get("matchingPreferences") or {}


def save_matching_preferences(user_id: str, preferences: dict) -> dict | None:
    """Replace the user's matchingPreferences map.

    Returns the saved map, or None if the user does not exist.
    """

    try:
        ref = _users().document(user_id)
        if not ref.get().exists:
            return None
        ref.update({"matchingPreferences": preferences})
        logger.info("Saved matching preferences for user %s", user_id)
        return preferences
    except FirestoreUnavailableError:
        raise
    except Exception as exc:
        logger.error("Failed to save matching preferences: %s", str(exc))
        raise FirestoreUnavailableError(str(exc)) from exc

"""
Configuration module for the Study Match service.

Loads environment variables and provides configuration singletons.
Uses pydantic for validation.
"""

from pydantic_settings import BaseSettings
from typing import Optional
import os


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All values come from .env file or system environment.
    Type hints provide validation (pydantic converts types automatically).
    """

    # ============================================================
    # FIREBASE CONFIGURATION (PREFERENCE STORE)
    # ============================================================
    FIREBASE_PROJECT_ID: str = ""
    """Firebase project holding the users collection. Required at startup."""

    GOOGLE_APPLICATION_CREDENTIALS: str = "/config/serviceAccountKey.json"
    """Path to Firebase service account JSON file."""

    USERS_COLLECTION: str = "users"
    """Collection whose documents carry profile fields and matchingPreferences."""

    # ============================================================
    # MATCHING CONFIGURATION
    # ============================================================
    MATCH_MIN_SCORE: int = 30
    """Matches scoring below this (0-100) are dropped unless the request overrides it."""

    MATCH_LIMIT: int = 20
    """Default maximum number of matches returned per request."""

    MAX_CANDIDATES: int = 500
    """Maximum candidate documents loaded from Firestore per request."""

    GRAPH_TIMEOUT: int = 30
    """Maximum seconds the matching pipeline may run before the request fails."""

    # ============================================================
    # SECURITY CONFIGURATION
    # ============================================================
    AI_SERVICE_TOKEN: str = os.getenv("AI_SERVICE_TOKEN", "")
    """Shared secret for authenticating requests from the web backend. Empty disables the check."""

    # ============================================================
    # SERVER CONFIGURATION
    # ============================================================
    PORT: int = 8000
    """Port to run FastAPI server on. Default: 8000."""

    HOST: str = "0.0.0.0"
    """Host to bind to. 0.0.0.0 = accessible from network."""

    DEBUG: bool = False
    """Enable debug logging. Set True for development, False for production."""

    LOG_FILE: Optional[str] = "logs/service.log"
    """Rotating log file path. Set empty to log to the console only."""

    class Config:
        """Pydantic configuration."""
        env_file = ".env"  # Read from .env file
        case_sensitive = True  # Variable names are case-sensitive
        extra = "ignore"  # Ignore extra env vars not defined above


# ============================================================
# SINGLETON INSTANCE
# ============================================================
# Load config once at startup, reuse throughout app
config = Config()


# ============================================================
# VALIDATION AT STARTUP
# ============================================================
def validate_config() -> dict:
    """
    Validate that required config values are set and in range.

    Called at app startup to fail fast if config is incomplete.

    Returns:
        dict: Status of each checked area

    Raises:
        ValueError: If required config is missing or out of range
    """
    errors = []

    if not config.FIREBASE_PROJECT_ID:
        errors.append("FIREBASE_PROJECT_ID is required")

    if not 0 <= config.MATCH_MIN_SCORE <= 100:
        errors.append("MATCH_MIN_SCORE must be between 0 and 100")

    if config.MATCH_LIMIT < 0:
        errors.append("MATCH_LIMIT must not be negative")

    if config.MAX_CANDIDATES <= 0:
        errors.append("MAX_CANDIDATES must be positive")

    if errors:
        raise ValueError(f"Configuration errors:\n" + "\n".join([f"  - {e}" for e in errors]))

    return {
        "firebase": "✓ Configured" if config.FIREBASE_PROJECT_ID else "✗ Missing",
        "matching": f"✓ minScore={config.MATCH_MIN_SCORE} limit={config.MATCH_LIMIT}",
        "service_token": "✓ Required" if config.AI_SERVICE_TOKEN else "✗ Disabled",
    }


if __name__ == "__main__":
    """Allow testing config by running: python -m src.config"""
    try:
        status = validate_config()
        print("✅ Configuration is valid!")
        print("\nConfiguration Status:")
        for key, value in status.items():
            print(f"  {key}: {value}")
    except ValueError as e:
        print(f"❌ Configuration error:\n{e}")
        exit(1)

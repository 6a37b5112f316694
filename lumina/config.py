"""Configuration management for Lumina."""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def get_secret(key: str, default: str = "") -> str:
    """Get a secret from Streamlit secrets or environment variables.

    Streamlit Cloud uses st.secrets for secret management, while local
    development uses environment variables. This function tries both.
    """
    try:
        import streamlit as st
        if hasattr(st, 'secrets') and key in st.secrets:
            return st.secrets[key]
    except Exception:
        # No secrets.toml outside a Streamlit run
        pass
    return os.getenv(key, default)


# --- Logging Setup ---
LOG_LEVEL = get_secret("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("lumina")

# Base paths
BASE_DIR = Path(__file__).parent.parent

# Handouts and citation exports written from the CLI
EXPORT_FOLDER = Path(get_secret("LUMINA_EXPORT_FOLDER", str(BASE_DIR / "exports")))

# Used in citations; the reading view has no URL of its own outside Streamlit
APP_URL = get_secret("LUMINA_APP_URL", "http://localhost:8501")

# Claude model settings
CLAUDE_MODEL = get_secret("LUMINA_MODEL", "claude-sonnet-4-20250514")
MAX_TOKENS = int(get_secret("LUMINA_MAX_TOKENS", "4000"))
EXPLANATION_MAX_TOKENS = 400

# API retry settings
API_MAX_RETRIES = int(get_secret("LUMINA_API_MAX_RETRIES", "3"))
API_RETRY_DELAY = int(get_secret("LUMINA_API_RETRY_DELAY", "2"))  # seconds

# Curriculum shape requested from the model (not enforced on the reply)
MIN_CHAPTERS = 5
MAX_CHAPTERS = 8
MIN_SECTIONS = 3
MAX_SECTIONS = 5

# Request size limits (characters)
QUIZ_CONTENT_LIMIT = 5000
EXPLAIN_CONTEXT_LIMIT = 1000
PREVIOUS_CONTEXT_LIMIT = 1500
SELECTION_MAX_LENGTH = 200

# Quiz settings
QUIZ_QUESTION_COUNT = 3
QUIZ_OPTION_COUNT = 4

# Audience presets shown on the welcome form: label -> prompt value
AUDIENCES = {
    "5 Year Old": "5-year-old child",
    "High School": "High School Student",
    "College": "College Student",
    "Professional": "Industry Professional",
}
DEFAULT_AUDIENCE = "College Student"

# Book metadata used in citations
BOOK_TITLE = "Lumina: AI Native Textbook"
BOOK_AUTHOR = "Lumina AI"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def get_api_key() -> str:
    """Read the Anthropic API key at call time."""
    return get_secret("ANTHROPIC_API_KEY", "")


def validate_config(require_api_key: bool = True) -> list[str]:
    """Validate configuration and return list of issues.

    Args:
        require_api_key: If True, treat missing API key as an error rather than a warning.

    Returns:
        List of warning strings for non-critical issues.

    Raises:
        ConfigurationError: If require_api_key is True and the key is missing.
    """
    issues = []

    if not get_api_key():
        msg = "ANTHROPIC_API_KEY not set in environment"
        if require_api_key:
            raise ConfigurationError(
                f"{msg}. Copy .env.example to .env and add your API key."
            )
        issues.append(msg)

    if API_MAX_RETRIES < 1:
        issues.append(f"LUMINA_API_MAX_RETRIES must be at least 1 (got {API_MAX_RETRIES})")

    if DEFAULT_AUDIENCE not in AUDIENCES.values():
        issues.append(f"Default audience is not one of the presets: {DEFAULT_AUDIENCE}")

    if EXPORT_FOLDER.exists() and not EXPORT_FOLDER.is_dir():
        issues.append(f"Export folder is not a directory: {EXPORT_FOLDER}")

    return issues

"""Configuration for Boat Vision."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent
LOGS_DIR = Path(os.getenv("LOGS_DIR", str(BASE_DIR / "logs")))
LOG_FILE = os.getenv("LOG_FILE", "boatvision-api.log")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
BETTERSTACK_SOURCE_TOKEN = os.getenv("BETTERSTACK_SOURCE_TOKEN")
BETTERSTACK_INGEST_HOST = os.getenv("BETTERSTACK_INGEST_HOST")

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "gemini-2.5-flash-lite")
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image-preview")

# Server
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Client
SERVER_URL = os.getenv("SERVER_URL", "http://127.0.0.1:8000")
# Empty means wait indefinitely for the server
CLIENT_TIMEOUT = float(os.getenv("CLIENT_TIMEOUT")) if os.getenv("CLIENT_TIMEOUT") else None


def validate_config():
    """Return a list of configuration problems for processing requests."""
    errors = []

    if not GEMINI_API_KEY:
        errors.append("GEMINI_API_KEY missing")
    if not ANALYSIS_MODEL:
        errors.append("ANALYSIS_MODEL is empty")
    if not IMAGE_MODEL:
        errors.append("IMAGE_MODEL is empty")

    return errors

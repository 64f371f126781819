# app/config.py
import logging
import os
from datetime import datetime, timezone
from dotenv import load_dotenv

# --- Load environment variables ---
# Load variables from the .env file. Values already present in the process
# environment win over the file.
load_dotenv(override=False)


def env_bool(name: str, default: bool = False) -> bool:
    """Reads a boolean flag from the environment ("1", "true", "yes", "on")."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_list(name: str, default: str = "") -> list:
    """Reads a comma-separated list from the environment, dropping blanks."""
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# --- Configure Logger ---
# Get the logger instance for the application
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("HabitBackend")
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

if not logger.handlers:
    # Stream handler: logs messages to the console (standard error)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stream_handler)

    # File handler: only when LOG_FILE is configured
    if LOG_FILE:
        file_handler = logging.FileHandler(LOG_FILE)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

# --- Access control ---
# Single external address or CIDR range allowed next to private traffic.
# Read once here; the filter receives it as an immutable value.
ALLOWED_HOME_IP = os.getenv("ALLOWED_HOME_IP", "")
# Headers carrying the real client address, checked in order
TRUSTED_PROXY_HEADERS = env_list("TRUSTED_PROXY_HEADERS", "Fly-Client-IP")
TRUSTED_PROXY_USE_LEFTMOST_IP = env_bool("TRUSTED_PROXY_USE_LEFTMOST_IP", False)

# --- Rate limiting ---
RATE_LIMIT_ENABLED = env_bool("RATE_LIMIT_ENABLED", False)
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "300"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "10"))
RATE_LIMIT_PATH_PREFIXES = env_list("RATE_LIMIT_PATH_PREFIXES", "/api/")

# --- CORS ---
CORS_ALLOWED_ORIGINS = env_list("CORS_ALLOWED_ORIGINS", "*")

# --- Database ---
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "habits")
# Apply pending migrations when the server starts
AUTOMIGRATE = env_bool("AUTOMIGRATE", True)

# --- Server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8090"))

if logger.isEnabledFor(logging.DEBUG):
    logger.debug("=== CONFIGURATION DEBUG ===")
    logger.debug(f"ALLOWED_HOME_IP: {'SET' if ALLOWED_HOME_IP else 'NOT SET'}")
    logger.debug(f"TRUSTED_PROXY_HEADERS: {TRUSTED_PROXY_HEADERS}")
    logger.debug(f"MONGO_DB_NAME: {MONGO_DB_NAME}")
    logger.debug(f"AUTOMIGRATE: {AUTOMIGRATE}")
    logger.debug("=== END CONFIGURATION DEBUG ===")

# --- URL Path Constants ---
HEALTH_ROUTE = "/api/health"


# Get the current UTC time for timestamping
def get_current_utc_time():
    return datetime.now(timezone.utc)

# config.py
import logging
import os
import sys

APP_NAME = "Equipment Admin Console"
APP_VERSION = os.environ.get("APP_VERSION", "1.4.0")

# Backend API
API_BASE_URL = os.environ.get("API_BASE_URL", os.environ.get("NEXT_PUBLIC_API_BASE_URL", "http://localhost:8000")).rstrip("/")
REQUEST_TIMEOUT = float(os.environ.get("REQUEST_TIMEOUT", "15"))

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Routes (sidebar pages)
SIGNIN_ROUTE = "Sign In"
ROOT_ROUTE = "Dashboard"

# Tables
PAGE_SIZE_OPTIONS = [5, 10, 20, 50]
DEFAULT_PAGE_SIZE = 10

# Forms
PASSWORD_MIN_LENGTH = 6
GENERIC_FAILURE = "Something went wrong!"
UNEXPECTED_FAILURE = "An unexpected error occurred!"


def api_base_url():
    # Read at request-build time so a changed environment is picked up on rerun.
    return os.environ.get("API_BASE_URL", os.environ.get("NEXT_PUBLIC_API_BASE_URL", API_BASE_URL)).rstrip("/")


def setup_logging(level=None):
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S',
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for noisy in ("httpx", "httpcore", "watchdog"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

"""Configuration for the Cliniko MCP Server."""

import os

from dotenv import load_dotenv

load_dotenv()

CLINIKO_API_KEY = os.environ.get("CLINIKO_API_KEY", "")
CLINIKO_API_BASE = os.environ.get("CLINIKO_API_BASE", "https://api.au4.cliniko.com/v1")
REQUEST_TIMEOUT = int(os.environ.get("REQUEST_TIMEOUT", "30"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Cliniko allows 200 requests per 5 minutes; batch workflows pace themselves.
REQUEST_DELAY = float(os.environ.get("REQUEST_DELAY", "1.0"))
RATE_LIMIT_BACKOFF = float(os.environ.get("RATE_LIMIT_BACKOFF", "5.0"))

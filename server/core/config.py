"""Configuration management for the estimation service."""

import os
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    if not raw:
        return []
    values = []
    for item in raw.split(","):
        cleaned = item.strip()
        if cleaned:
            values.append(cleaned)
    # Preserve order while removing duplicates
    seen = set()
    unique: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


# API Configuration
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-5")
CLAUDE_TIMEOUT_SECONDS = float(os.getenv("CLAUDE_TIMEOUT_SECONDS", "300"))

# Estimate generation settings
ESTIMATE_MAX_TOKENS = int(os.getenv("ESTIMATE_MAX_TOKENS", "8000"))
ESTIMATE_TEMPERATURE = float(os.getenv("ESTIMATE_TEMPERATURE", "0.4"))
RATE_LIMIT_BACKOFF_SECONDS = (30, 60, 120)

# Upload limits
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(32 * 1024 * 1024)))  # 32 MB
ACCEPTED_UPLOAD_TYPES = ("application/pdf",)

# Export naming, as sent in Content-Disposition
EXPORT_FILENAME_STEM = "estimation_report"

# HTTP server
SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("SERVER_PORT", "8080"))
SERVER_RELOAD = _env_flag("SERVER_RELOAD")

# CORS: the dev UI runs on Vite's default port
CORS_ALLOW_ORIGINS = _env_list("CORS_ALLOW_ORIGINS", "http://localhost:5173")
CORS_ALLOW_CREDENTIALS = _env_flag("CORS_ALLOW_CREDENTIALS")

"""Configuration management for the estimate workflow client."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


def _resolve_path(env_name: str, default: Path) -> Path:
    value = os.getenv(env_name)
    if value:
        return Path(value).expanduser().resolve()
    return default.resolve()


# Estimation service endpoints
BASE_URL = os.getenv("ESTIMATOR_BASE_URL", "http://localhost:8080").rstrip("/")
UPLOAD_PATH = "/api/estimate/upload"
FEEDBACK_PATH = "/api/estimate/feedback"
EXPORT_PDF_PATH = "/api/download/pdf"
EXPORT_DOCX_PATH = "/api/download/docx"

# No timeout unless one is configured; a hung call keeps its busy flag set
REQUEST_TIMEOUT_SECONDS = _env_float("ESTIMATOR_TIMEOUT_SECONDS")

# Where exported estimates are saved
DOWNLOAD_DIR = _resolve_path("ESTIMATOR_DOWNLOAD_DIR", Path.cwd())
EXPORT_BASENAME = "estimation"

# Upload settings
ACCEPTED_MEDIA_TYPES = ("application/pdf",)
UPLOAD_FIELD_NAME = "file"

# Logging
LOG_LEVEL = os.getenv("ESTIMATOR_LOG_LEVEL", "WARNING").upper()
DEBUG = _env_flag("ESTIMATOR_DEBUG")

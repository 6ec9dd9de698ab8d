"""
Plan executor configuration
"""

import os
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()

# Fields the label API commonly returns and later steps usually need.
DEFAULT_AUTO_EXTRACT_FIELDS: Tuple[str, ...] = (
    'documentGuid', 'documentGUID',
    'productName',
    'encryptedId', 'encryptedID',
    'encryptedDocumentID',
    'encryptedProductID',
    'setGuid', 'setGUID',
    'labelerName',
)


def _split_fields(value: str) -> Tuple[str, ...]:
    if value.strip().lower() == "default":
        return DEFAULT_AUTO_EXTRACT_FIELDS
    return tuple(field.strip() for field in value.split(',') if field.strip())


class Settings:
    """Plan executor settings from environment variables."""

    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:5093")
    API_AUTH_TOKEN: str = os.getenv("API_AUTH_TOKEN", "")
    STEP_TIMEOUT_SECONDS: float = float(os.getenv("STEP_TIMEOUT_SECONDS", "30"))
    FAILURE_STATUS_THRESHOLD: int = int(os.getenv("FAILURE_STATUS_THRESHOLD", "400"))
    EXTRACTION_MAX_DEPTH: int = int(os.getenv("EXTRACTION_MAX_DEPTH", "10"))
    AUTO_EXTRACT_FIELDS: Tuple[str, ...] = _split_fields(os.getenv("AUTO_EXTRACT_FIELDS", ""))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
    SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8010"))


settings = Settings()

# core/config.py
import os
from pydantic import field_validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
import logging
from typing import Optional

# Load variables from .env file located in the project root directory
dotenv_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path)
else:
    load_dotenv() # Fallback

DEFAULT_STORAGE_BUCKET = "myfile"

class Settings(BaseSettings):
    """Loads configuration settings from environment variables and .env file."""

    # --- Supabase Configuration ---
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_KEY: str | None = None # SERVICE_ROLE key, needed to issue signed upload URLs

    # --- Service URLs ---
    FILE_SERVICE_URL: str = "http://localhost:8000"

    # --- Storage Configuration ---
    FILE_STORAGE_BUCKET: str = DEFAULT_STORAGE_BUCKET
    UPLOAD_PATH_PREFIX: str = "uploads"
    FILES_TABLE: str = "file_upload"

    # --- Upload Strategy ---
    # "signed": client PUTs bytes to a signed URL. "inline": client posts base64 bytes
    # to the file service, which forwards them (for hosts with no body size ceiling issue).
    UPLOAD_STRATEGY: str = "signed"
    INLINE_UPLOAD_MAX_BYTES: int = 45 * 1024 * 1024

    # --- Orchestrator ---
    ORCHESTRATOR_TIMEOUT_SECONDS: Optional[float] = None

    # --- Diagnostics ---
    DEBUG: bool = False

    @field_validator("FILE_STORAGE_BUCKET")
    @classmethod
    def bucket_or_default(cls, value: str) -> str:
        # A blank FILE_STORAGE_BUCKET= line in .env must not produce bucket-less storage calls
        if not value.strip():
            logging.getLogger("FileDrop_Core").warning(f"FILE_STORAGE_BUCKET is empty, using default '{DEFAULT_STORAGE_BUCKET}'.")
            return DEFAULT_STORAGE_BUCKET
        return value.strip()

    class Config:
        env_file = '.env'
        env_file_encoding = 'utf-8'
        extra = 'ignore'

# Instantiate settings once for import
settings = Settings()

# --- Logging Setup ---
log_level_str = os.getenv("LOG_LEVEL", "INFO").upper(); log_level = getattr(logging, log_level_str, logging.INFO)
logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - [%(levelname)s] - %(message)s', datefmt='%Y-%m-%d %H:%M:%S')
logger = logging.getLogger("FileDrop_Core")
logging.getLogger("httpx").setLevel(logging.WARNING); logging.getLogger("supabase").setLevel(logging.WARNING)
logging.getLogger("watchfiles").setLevel(logging.WARNING)

# --- Configuration Validation Checks ---
logger.info(f"Core Settings loaded. Log Level: {log_level_str}")
if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
    logger.warning("Supabase URL/Service Key missing. Upload and file endpoints will return configuration errors.")
logger.info(f"Using Supabase Storage Bucket: {settings.FILE_STORAGE_BUCKET}")
if settings.UPLOAD_STRATEGY not in ("signed", "inline"):
    logger.error(f"Invalid UPLOAD_STRATEGY: {settings.UPLOAD_STRATEGY}. Expected 'signed' or 'inline'.")
try: assert settings.INLINE_UPLOAD_MAX_BYTES > 0
except AssertionError: logger.error(f"Invalid INLINE_UPLOAD_MAX_BYTES: {settings.INLINE_UPLOAD_MAX_BYTES}.")
logger.info(f"Upload Config: Strategy={settings.UPLOAD_STRATEGY}, Table={settings.FILES_TABLE}, Inline Limit={settings.INLINE_UPLOAD_MAX_BYTES} bytes")

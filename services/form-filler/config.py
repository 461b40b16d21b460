"""Environment-based configuration for the form filler service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Form filler settings, loaded from environment variables."""

    # Server
    PORT: int = 8092
    LOG_LEVEL: str = "INFO"

    # Extraction service (empty key = AI extraction unavailable)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4.1-mini"

    # Extraction service timeouts and retry (1 attempt = no retry)
    EXTRACTION_TIMEOUT_SECONDS: int = 120
    EXTRACTION_CONNECT_TIMEOUT: int = 10
    EXTRACTION_RETRY_ATTEMPTS: int = 1
    EXTRACTION_RETRY_DELAY: float = 2.0
    EXTRACTION_RETRY_BACKOFF: float = 2.0

    # Read-only assets
    SCHEMA_PATH: str = "assets/schema.xlsx"
    TEMPLATE_PATH: str = "assets/template.pdf"

    # Uploads
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024
    NATIVE_TEXT_MIN_CHARS: int = 50  # at or below this, a PDF is treated as scanned

    # OCR
    OCR_LANGUAGE: str = "eng"
    OCR_TIMEOUT_SECONDS: int = 120
    OCR_RENDER_ZOOM: float = 2.0

    # Response
    OUTPUT_FILENAME: str = "filled_form.pdf"

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()

"""Environment-based configuration for the document scanner service."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Scanner settings, loaded from environment variables."""

    # Server
    PORT: int = 8787
    LOG_LEVEL: str = "INFO"

    # Mistral (OCR + chat). Empty key = service not configured.
    MISTRAL_API_KEY: str = ""
    MISTRAL_BASE_URL: str = "https://api.mistral.ai"
    MISTRAL_CHAT_MODEL: str = "mistral-large-latest"
    MISTRAL_OCR_MODEL: str = "mistral-ocr-latest"

    # Cloudflare Workers AI
    CLOUDFLARE_ACCOUNT_ID: str = ""
    CLOUDFLARE_API_TOKEN: str = ""
    CLOUDFLARE_BASE_URL: str = "https://api.cloudflare.com/client/v4"
    CLOUDFLARE_MODEL: str = "@cf/meta/llama-3.3-70b-instruct-fp8-fast"
    CLOUDFLARE_MAX_TOKENS: int = 2048

    # Which JSON extractor to use: "mistral" or "cloudflare"
    JSON_EXTRACTOR_TYPE: str = "mistral"
    JSON_EXTRACTOR_FALLBACK: str = ""

    # Timeouts (seconds) and OCR retry
    LLM_TIMEOUT_SECONDS: float = 45.0
    OCR_TIMEOUT_SECONDS: float = 45.0
    CONNECT_TIMEOUT_SECONDS: float = 10.0
    OCR_RETRY_ATTEMPTS: int = 2
    OCR_RETRY_DELAY: float = 1.0
    OCR_RETRY_BACKOFF: float = 2.0

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Confidence blend
    CONFIDENCE_FINISH_WEIGHT: float = Field(0.6, ge=0, le=1)
    CONFIDENCE_STRUCTURE_WEIGHT: float = Field(0.2, ge=0, le=1)
    CONFIDENCE_MODEL_WEIGHT: float = Field(0.2, ge=0, le=1)
    CONFIDENCE_INVALID_MULTIPLIER: float = Field(0.3, ge=0, le=1)
    OCR_CONFIDENCE_WEIGHT: float = Field(0.6, ge=0, le=1)

    # Hallucination heuristics
    HALLUCINATION_SUSPICION_THRESHOLD: int = 2
    HALLUCINATION_CONFIDENCE_CAP: float = Field(0.3, ge=0, le=1)

    model_config = {"env_prefix": "", "case_sensitive": True, "env_file": ".env", "extra": "ignore"}


settings = Settings()

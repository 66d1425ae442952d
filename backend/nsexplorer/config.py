from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Namespace Explorer"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # turbopuffer
    TURBOPUFFER_API_KEY: str = ""
    TURBOPUFFER_REGION: str = "gcp-us-central1"
    # Overrides the region-derived URL when set
    TURBOPUFFER_BASE_URL: str = ""
    STORE_TIMEOUT_SECONDS: float = 30.0

    # Namespace listing (single page only)
    NAMESPACE_PAGE_SIZE: int = 100

    # Query builder
    DEFAULT_TOP_K: int = 100
    # Cannot exceed the store's own ceiling of 1200
    MAX_TOP_K: int = Field(1200, ge=0, le=1200)
    MAX_BUILDER_SESSIONS: int = 500

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    @property
    def store_base_url(self) -> str:
        if self.TURBOPUFFER_BASE_URL:
            return self.TURBOPUFFER_BASE_URL.rstrip("/")
        return f"https://{self.TURBOPUFFER_REGION}.turbopuffer.com"


settings = Settings()

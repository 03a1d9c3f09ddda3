import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings:
    # App
    APP_NAME: str = "Coach Relay"

    # Requests
    MAX_BODY_BYTES: int = 1024 * 1024

    def __init__(self):
        self.DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
        self.ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Server
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT") or 3000)

        # OpenAI
        self.OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

        # CORS (same-origin unless set)
        self.CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "")

        # Static front-end
        self.STATIC_DIR: str = os.getenv("STATIC_DIR") or str(PROJECT_ROOT / "public")

        # Rate Limiting
        self.RATE_LIMIT_API: str = os.getenv(
            "RATE_LIMIT_API", "60/minute"
        )  # 60 requests per minute per client address
        self.TRUSTED_PROXY_HOPS: int = int(os.getenv("TRUSTED_PROXY_HOPS") or 1)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./inventory.db"
    )
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    # Upper bound for a single record-store call
    store_timeout_seconds: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))

    # Login credentials for the two built-in roles
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "asdf123")
    production_username: str = os.getenv("PRODUCTION_USERNAME", "production")
    production_password: str = os.getenv("PRODUCTION_PASSWORD", "plast")

    # Company logo
    logo_max_bytes: int = int(os.getenv("LOGO_MAX_BYTES", str(5 * 1024 * 1024)))

    environment: str = os.getenv("ENVIRONMENT", "development").lower()
    log_level: str = os.getenv("LOG_LEVEL", "")
    cors_origins: list[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]


settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./streak_engine.db"
    APP_ENV: str = "development"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"
    # JSON lines for log shippers; human-readable console output otherwise.
    LOG_JSON: bool = False

    # Optimistic-lock retries for a single unit of work on user_progress.
    WRITE_RETRY_ATTEMPTS: int = 3

    # Granted through the ledger when a user's progress is initialized.
    STARTING_FOUNDER_COINS: int = 50
    STARTING_VISION_GEMS: int = 3

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def database_url(self) -> str:
        """DATABASE_URL with legacy postgres:// normalized for SQLAlchemy 2.x."""
        url = self.DATABASE_URL.strip()
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+psycopg2://", 1)
        return url


settings = Settings()

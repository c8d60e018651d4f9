from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Postgres connection (optional - falls back to SQLite when not configured)
    DATABASE_NAME: str | None = None
    DATABASE_USER: str | None = None
    DATABASE_PASSWORD: str | None = None
    DATABASE_HOST: str | None = None
    DATABASE_PORT: int = 5432

    SQLITE_PATH: str = "openfields.db"

    # Create tables on startup instead of relying on external migrations
    AUTO_CREATE_TABLES: bool = True

    # Editor client / CLI
    API_BASE_URL: str = "http://localhost:8000/api/v1"
    HTTP_TIMEOUT: float = 30.0

    # JSON file describing post types, templates, roles etc. of the host platform
    HOST_CATALOG_PATH: str | None = None

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_HOST and self.DATABASE_USER and self.DATABASE_NAME:
            return (
                f"postgresql+psycopg2://{self.DATABASE_USER}:"
                f"{self.DATABASE_PASSWORD or ''}@{self.DATABASE_HOST}:"
                f"{self.DATABASE_PORT}/{self.DATABASE_NAME}"
            )
        return f"sqlite:///{self.SQLITE_PATH}"

    DEBUG: bool = False

    # Sentry error tracking
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()

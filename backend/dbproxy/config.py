"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

_REPO_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "dbproxy"
    db_host: str = "host.docker.internal"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    mysql_database: str = "dbproxy"
    database_url: str | None = None
    dbproxy_host: str = "0.0.0.0"
    dbproxy_port: int = 8080
    schema_path: Path = _REPO_ROOT / "schema.json"
    connect_max_attempts: int = 5
    connect_retry_interval_seconds: float = 10.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(_REPO_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def sqlalchemy_url(self) -> str | URL:
        """Return the engine URL; an explicit ``DATABASE_URL`` wins over the individual parts."""

        if self.database_url:
            return self.database_url
        return URL.create(
            "mysql+pymysql",
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.mysql_database,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()

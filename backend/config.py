"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    data_dir: Path = Field(default=DEFAULT_DATA_DIR, alias="DATA_DIR")

    # Admin authentication
    drop_admin_pass: str = Field(default="", alias="DROP_ADMIN_PASS")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    base_url: str = Field(default="", alias="BASE_URL")

    # Lifecycle
    sweep_interval: float = Field(default=60.0, gt=0, alias="SWEEP_INTERVAL")
    orphan_grace: float = Field(default=300.0, ge=0, alias="ORPHAN_GRACE")
    operation_timeout: float = Field(default=30.0, gt=0, alias="OPERATION_TIMEOUT")
    default_expiry: str = Field(default="24h", alias="DEFAULT_EXPIRY")
    max_file_size: str = Field(default="100MB", alias="MAX_FILE_SIZE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("drop_admin_pass")
    @classmethod
    def _strip_secret(cls, value: str) -> str:
        return value.strip()

    @property
    def admin_enabled(self) -> bool:
        return bool(self.drop_admin_pass)

    @property
    def files_dir(self) -> Path:
        return self.data_dir / "files"

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.data_dir}/drop.db"

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.files_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""Library configuration loaded from the environment."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``VERDICT_*`` environment variables."""

    app_name: str = "Verdict Ruleset Inspector"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Registry
    trace_limit: int = Field(default=25, ge=1, description="Trace runs kept per ruleset")
    auto_register: bool = True

    # Inspector UI
    ui_host: str = "127.0.0.1"
    ui_port: int = 5173
    ui_load: str = ""

    model_config = SettingsConfigDict(
        env_prefix="VERDICT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def ui_load_paths(self) -> list[str]:
        """Modules or files to import before the inspector starts."""
        return [item.strip() for item in self.ui_load.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Convert Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class ConvertSettings(BaseSettings):
    """
    Convert service configuration with validation.

    All settings can be overridden via environment variables or a .env file.
    """

    # === Deployment ===
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === Browser ===
    chromium_executable_path: Optional[str] = Field(
        default=None,
        description="Locally installed Chromium/Chrome binary (ignored in production)"
    )
    browser_headless: bool = Field(
        default=True,
        description="Launch Chromium without a visible window"
    )
    chromium_sandbox: bool = Field(
        default=True,
        description="Run Chromium with its sandbox enabled"
    )
    render_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=300000,
        description="Budget for page load, network idle and PDF extraction (ms)"
    )
    validate_browser_on_startup: bool = Field(
        default=True,
        description="Launch a throwaway browser session at startup to report readiness"
    )

    # === HTTP ===
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins"
    )

    # === Logging ===
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.strip().lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v_upper = v.strip().upper()
        if v_upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v_upper

    @field_validator("chromium_executable_path")
    @classmethod
    def blank_path_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def validate_deployment_config(self) -> List[str]:
        """
        Validate configuration is suitable for the selected environment.

        Returns list of warning/error messages.
        """
        issues = []

        if self.is_production:
            if self.chromium_executable_path:
                issues.append(
                    "WARNING: CHROMIUM_EXECUTABLE_PATH is ignored in production "
                    "(bundled Chromium is used)"
                )
            if not self.browser_headless:
                issues.append("WARNING: BROWSER_HEADLESS=false is ignored in production")
        elif self.chromium_executable_path and not Path(self.chromium_executable_path).exists():
            issues.append(
                f"CRITICAL: CHROMIUM_EXECUTABLE_PATH does not exist: {self.chromium_executable_path}"
            )

        return issues

    class Config:
        env_prefix = ""  # No prefix, use exact env var names
        case_sensitive = False  # RENDER_TIMEOUT_MS = render_timeout_ms
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> ConvertSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached. Tests call ``get_settings.cache_clear()``
    after changing the environment.
    """
    return ConvertSettings()


def validate_config_on_startup() -> ConvertSettings:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_deployment_config():
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  render_timeout={settings.render_timeout_ms}ms")
    logger.info(f"  headless={settings.browser_headless} sandbox={settings.chromium_sandbox}")
    logger.info(f"  chromium_executable_path={settings.chromium_executable_path or '(bundled)'}")
    return settings

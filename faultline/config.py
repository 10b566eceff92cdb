"""
Configuration management for the service.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_prefix="FAULTLINE_", case_sensitive=False)

    log_level: str = "INFO"
    log_error_context: bool = True

    # Error page rendering
    include_exception_detail: bool = False
    expose_error_messages: bool = False
    internal_error_message: str = "내부 오류"
    error_pages: dict[int, str] = {
        400: "/error-page/400",
        404: "/error-page/404",
        500: "/error-page/500",
    }

    # Exception advice scope, as module prefixes of the covered route handlers
    advice_modules: list[str] = ["faultline.api"]

    # Reason keys declared with a status, resolved to client-facing messages
    reason_messages: dict[str, str] = {"error.bad": "잘못된 요청 오류입니다."}


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()  # type: ignore[call-arg]

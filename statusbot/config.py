from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


DEFAULT_PROFILE_BASE_URL = "https://t.me"


@dataclass(frozen=True)
class AppConfig:
    telegram_bot_token: str
    report_chat_id: str | None = None
    profile_base_url: str = DEFAULT_PROFILE_BASE_URL
    probe_timeout_seconds: float = 10.0
    session_ttl_minutes: int = 15
    webhook_url: str | None = None
    port: int = 5000


class ConfigError(RuntimeError):
    pass


def _first_env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return default


def load_config() -> AppConfig:
    load_dotenv()

    telegram_bot_token = _first_env("TELEGRAM_BOT_TOKEN", "BOT_TOKEN")
    report_chat_id = _first_env("REPORT_CHAT_ID", "TELEGRAM_CHANNEL_CHAT_ID") or None
    profile_base_url = _first_env("PROFILE_BASE_URL", default=DEFAULT_PROFILE_BASE_URL).rstrip("/")
    probe_timeout_raw = _first_env("PROBE_TIMEOUT_SECONDS", default="10")
    session_ttl_raw = _first_env("SESSION_TTL_MINUTES", default="15")
    webhook_url = _first_env("WEBHOOK_URL", "RENDER_EXTERNAL_URL").rstrip("/") or None
    port_raw = _first_env("PORT", default="5000")

    if not telegram_bot_token:
        raise ConfigError("Missing TELEGRAM_BOT_TOKEN in environment/.env")

    if not profile_base_url.startswith(("http://", "https://")):
        raise ConfigError("PROFILE_BASE_URL must be an http(s) URL")

    try:
        probe_timeout_seconds = float(probe_timeout_raw)
        if probe_timeout_seconds <= 0 or probe_timeout_seconds > 60:
            raise ValueError
    except ValueError as exc:
        raise ConfigError("PROBE_TIMEOUT_SECONDS must be a float in range (0, 60]") from exc

    try:
        session_ttl_minutes = int(session_ttl_raw)
        if session_ttl_minutes < 1 or session_ttl_minutes > 1440:
            raise ValueError
    except ValueError as exc:
        raise ConfigError("SESSION_TTL_MINUTES must be an integer in range [1, 1440]") from exc

    try:
        port = int(port_raw)
        if port < 1 or port > 65535:
            raise ValueError
    except ValueError as exc:
        raise ConfigError("PORT must be an integer in range [1, 65535]") from exc

    return AppConfig(
        telegram_bot_token=telegram_bot_token,
        report_chat_id=report_chat_id,
        profile_base_url=profile_base_url,
        probe_timeout_seconds=probe_timeout_seconds,
        session_ttl_minutes=session_ttl_minutes,
        webhook_url=webhook_url,
        port=port,
    )

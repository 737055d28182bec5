from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Literal, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field

DEFAULT_SERVER_URL = "https://hapi.fhir.org/baseR4"
DEFAULT_ALTERNATE_SERVERS = [
    "https://hapi.fhir.org/baseR4",
    "https://r4.smarthealthit.org",
    "https://server.fire.ly",
]
DEFAULT_TIMEOUT = 10.0

_TRUTHY = {"1", "true", "yes", "on"}


def load_env_file(path: Optional[Path] = None) -> Dict[str, str]:
    """Copy variables from a .env file into os.environ without overriding existing ones."""
    env_path = Path(path) if path is not None else Path(".env")
    if not env_path.is_file():
        return {}
    loaded: Dict[str, str] = {}
    for key, value in dotenv_values(env_path).items():
        if value is None or key in os.environ:
            continue
        os.environ[key] = value
        loaded[key] = value
    return loaded


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip().rstrip("/") for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    server_url: str = DEFAULT_SERVER_URL
    alternate_servers: List[str] = Field(default_factory=lambda: list(DEFAULT_ALTERNATE_SERVERS))
    timeout: float = DEFAULT_TIMEOUT
    use_cors_proxies: bool = False
    local_fallback: bool = True

    smart_mode: bool = False
    llm_provider: Literal["openai", "anthropic"] = "openai"
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: Optional[str] = None
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_model: str = "claude-3-5-haiku-latest"

    log_level: str = "INFO"

    def api_key_for(self, provider: str) -> Optional[str]:
        if provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key


def load_settings(env_file: Optional[Path] = None) -> Settings:
    load_env_file(env_file)
    provider = (os.getenv("LLM_PROVIDER") or "openai").strip().lower()
    if provider not in {"openai", "anthropic"}:
        provider = "openai"
    return Settings(
        server_url=(os.getenv("FHIR_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
        alternate_servers=_env_list("FHIR_ALTERNATE_SERVERS", DEFAULT_ALTERNATE_SERVERS),
        timeout=_env_float("FHIR_TIMEOUT", DEFAULT_TIMEOUT),
        use_cors_proxies=_env_flag("FHIR_USE_CORS_PROXIES", False),
        local_fallback=_env_flag("FHIR_LOCAL_FALLBACK", True),
        smart_mode=_env_flag("FHIR_SMART_MODE", False),
        llm_provider=provider,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=(os.getenv("OPENAI_BASE_URL") or "https://api.openai.com/v1").rstrip("/"),
        openai_model=os.getenv("OPENAI_MODEL") or "gpt-4o-mini",
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        anthropic_base_url=(
            os.getenv("ANTHROPIC_BASE_URL") or "https://api.anthropic.com/v1"
        ).rstrip("/"),
        anthropic_model=os.getenv("ANTHROPIC_MODEL") or "claude-3-5-haiku-latest",
        log_level=os.getenv("LOG_LEVEL") or "INFO",
    )


__all__ = ["Settings", "load_settings", "load_env_file", "DEFAULT_SERVER_URL"]

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from packages.core.config import DEFAULT_SERVER_URL, Settings


class SessionContext(BaseModel):
    """User-settable state shared by every query in one session; last write wins."""
    server_url: str = DEFAULT_SERVER_URL
    default_server_url: str = DEFAULT_SERVER_URL
    smart_mode: bool = False
    provider: Literal["openai", "anthropic"] = "openai"
    api_key: Optional[str] = None
    model: Optional[str] = None
    status: str = "Not connected"
    status_source: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionContext":
        return cls(
            server_url=settings.server_url,
            default_server_url=settings.server_url,
            smart_mode=settings.smart_mode,
            provider=settings.llm_provider,
            api_key=settings.api_key_for(settings.llm_provider),
        )

    def select_server(self, server_url: str) -> None:
        self.server_url = server_url.rstrip("/")
        self.default_server_url = self.server_url
        self.status = "Connecting..."
        self.status_source = None

    def set_status(self, status: str, source: Optional[str] = None) -> None:
        self.status = status
        self.status_source = source

    def smart_mode_ready(self) -> bool:
        return self.smart_mode and bool(self.api_key)


__all__ = ["SessionContext"]

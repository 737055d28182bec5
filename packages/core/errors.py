from __future__ import annotations

from typing import Optional


class FHIRRequestError(RuntimeError):
    """A single FHIR GET that did not produce usable JSON."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class NetworkError(FHIRRequestError):
    pass


class HttpError(FHIRRequestError):
    def __init__(self, status: int, message: str, url: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status}: {message}", url=url)
        self.status = status


class AllStrategiesExhausted(RuntimeError):
    def __init__(self, attempts: list) -> None:
        last_error = attempts[-1].error if attempts else "no strategies attempted"
        super().__init__(
            f"All {len(attempts)} transport strategies failed. Last error: {last_error}"
        )
        self.attempts = attempts


class ProviderError(RuntimeError):
    """Cloud reasoning call failed or returned content that could not be used."""


__all__ = [
    "FHIRRequestError",
    "NetworkError",
    "HttpError",
    "AllStrategiesExhausted",
    "ProviderError",
]

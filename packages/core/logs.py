from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Install one stderr handler on the root logger; repeated calls only change the level."""
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    if not any(getattr(handler, "_fhir_assistant", False) for handler in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._fhir_assistant = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root


__all__ = ["configure_logging", "LOG_FORMAT"]

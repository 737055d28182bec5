from __future__ import annotations

import argparse
import sys

from packages.core.config import load_settings
from packages.core.errors import ProviderError
from packages.core.llm import LLMClient


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check that the configured LLM provider answers.")
    parser.add_argument("--provider", choices=["openai", "anthropic"])
    args = parser.parse_args(argv)

    settings = load_settings()
    provider = args.provider or settings.llm_provider
    key = settings.api_key_for(provider)
    print(f"provider: {provider}")
    print("API key present:", bool(key))
    if not key:
        print("Missing API key (OPENAI_API_KEY or ANTHROPIC_API_KEY)", file=sys.stderr)
        return 1

    if provider == "anthropic":
        client = LLMClient("anthropic", key, settings.anthropic_model, settings.anthropic_base_url)
    else:
        client = LLMClient("openai", key, settings.openai_model, settings.openai_base_url)
    try:
        text = client.complete("Reply with exactly: OK", "ping").strip()
    except ProviderError as exc:
        print("LLM call failed:", exc, file=sys.stderr)
        return 1
    print("LLM response:", text)
    print("STATUS:", "OK" if text == "OK" else "UNEXPECTED")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

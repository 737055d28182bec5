from __future__ import annotations

import argparse
import json
import sys

from packages.assistant import build_assistant
from packages.core.config import load_settings
from packages.core.logs import configure_logging
from packages.core.schemas.session import SessionContext
from packages.query.classifier import classify


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Answer a free-text FHIR question.")
    parser.add_argument("text", help='Question, e.g. "Show all patients".')
    parser.add_argument("--server", help="FHIR base URL; defaults to FHIR_SERVER_URL.")
    parser.add_argument("--smart", action="store_true", help="Plan the query with the configured LLM.")
    parser.add_argument("--provider", choices=["openai", "anthropic"], help="LLM provider for --smart.")
    parser.add_argument("--no-local", action="store_true", help="Disable the local sample data fallback.")
    parser.add_argument("--classify-only", action="store_true", help="Print the intent and exit.")
    parser.add_argument("--json", action="store_true", help="Emit JSON output.")
    args = parser.parse_args(argv)

    if args.classify_only:
        print(classify(args.text).model_dump_json())
        return 0

    settings = load_settings()
    configure_logging(settings.log_level)
    if args.no_local:
        settings.local_fallback = False
    if args.provider:
        settings.llm_provider = args.provider

    session = SessionContext.from_settings(settings)
    if args.server:
        session.select_server(args.server)
    if args.smart:
        session.smart_mode = True
        if not session.smart_mode_ready():
            print(
                f"Error: --smart needs an API key for {session.provider} "
                "(OPENAI_API_KEY or ANTHROPIC_API_KEY).",
                file=sys.stderr,
            )
            return 2

    assistant = build_assistant(settings, session)
    result = assistant.process_query(args.text)
    if args.json:
        payload = result.model_dump()
        payload["meta"] = {
            "server_url": session.server_url,
            "status": session.status,
            "route": assistant.last_route,
            "intent": assistant.last_intent,
        }
        print(json.dumps(payload, indent=2))
    else:
        print(result.content)
        print(f"\n[{result.type}] {session.status} ({session.server_url})", file=sys.stderr)
    return 1 if result.type == "error" else 0


if __name__ == "__main__":
    raise SystemExit(main())

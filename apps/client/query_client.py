from __future__ import annotations

import argparse
import json
import sys
import urllib.error
import urllib.request
from typing import Any, Dict, Optional


def build_payload(
    text: str,
    server_url: Optional[str] = None,
    smart_mode: Optional[bool] = None,
    provider: Optional[str] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"text": text}
    if server_url:
        payload["server_url"] = server_url
    if smart_mode is not None:
        payload["smart_mode"] = smart_mode
    if provider:
        payload["provider"] = provider
    return payload


def post_query(url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    data = json.dumps(payload).encode("utf-8")
    request = urllib.request.Request(
        f"{url.rstrip('/')}/v1/query",
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(request, timeout=60) as response:
        raw = response.read().decode("utf-8", errors="replace")
        return json.loads(raw)


def format_pretty(result: Dict[str, Any]) -> str:
    lines = [f"[{result.get('type', 'info')}]", result.get("content") or ""]
    meta = result.get("meta") or {}
    if meta:
        lines.append("")
        lines.append(
            f"server: {meta.get('server_url', 'unknown')} | status: {meta.get('status', 'unknown')}"
            f" | route: {meta.get('route') or 'unknown'}"
        )
    return "\n".join(lines)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask the FHIR query API a question.")
    parser.add_argument("--url", required=True, help="Base API URL, e.g. http://127.0.0.1:8000")
    parser.add_argument("--text", required=True, help="Free-text question.")
    parser.add_argument("--server", help="FHIR base URL to query instead of the API default.")
    parser.add_argument("--smart", action="store_true", help="Ask the API to use Smart Mode.")
    parser.add_argument("--provider", choices=["openai", "anthropic"])
    parser.add_argument("--pretty", action="store_true", help="Print human readable output.")
    parser.add_argument("--debug", action="store_true", help="Print the request URL.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.debug:
        print(f"request_url={args.url.rstrip('/')}/v1/query")
    payload = build_payload(args.text, args.server, True if args.smart else None, args.provider)
    try:
        result = post_query(args.url, payload)
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="replace") if hasattr(exc, "read") else ""
        print(body or str(exc), file=sys.stderr)
        return 1
    except Exception as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if args.pretty:
        print(format_pretty(result))
    else:
        print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

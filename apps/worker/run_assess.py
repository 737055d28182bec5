from __future__ import annotations

import argparse
import json

from fastapi.encoders import jsonable_encoder

from packages.core.config import load_settings
from packages.core.logs import configure_logging
from packages.fhir.fetcher import ResourceFetcher
from packages.quality.report import assessment_summary, render_assessment_text
from packages.quality.scorer import QualityScorer


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Score a FHIR server's data quality.")
    parser.add_argument("--server", help="FHIR base URL; defaults to FHIR_SERVER_URL.")
    parser.add_argument("--bands", choices=["four_band", "two_band"], default="four_band")
    parser.add_argument("--json", action="store_true", help="Emit JSON output.")
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings.log_level)
    server_url = (args.server or settings.server_url).rstrip("/")

    assessment = QualityScorer(ResourceFetcher(timeout=settings.timeout)).assess(server_url)
    if args.json:
        content = jsonable_encoder(assessment)
        content["summary"] = assessment_summary(assessment, args.bands)
        print(json.dumps(content, indent=2))
    else:
        print(render_assessment_text(assessment, args.bands))
    return 0 if assessment.accessible_resources() else 1


if __name__ == "__main__":
    raise SystemExit(main())

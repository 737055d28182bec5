from __future__ import annotations

from typing import Literal, NamedTuple

from packages.core.schemas.quality import QualityAssessment

BandScheme = Literal["four_band", "two_band"]


class ScoreBand(NamedTuple):
    label: str
    description: str


# Dashboard wording.
FOUR_BAND = (
    (80, ScoreBand("EXCELLENT", "This server has high-quality, well-connected data")),
    (60, ScoreBand("GOOD", "This server has decent data with some issues")),
    (40, ScoreBand("FAIR", "This server has significant data quality issues")),
    (0, ScoreBand("POOR", "This server has major data quality problems")),
)

# Chat wording.
TWO_BAND = (
    (80, ScoreBand("good", "This server has good data availability")),
    (50, ScoreBand("limited", "This server has limited data availability")),
    (0, ScoreBand("poor", "This server has poor data availability")),
)

_SCHEMES = {"four_band": FOUR_BAND, "two_band": TWO_BAND}


def score_band(score: float, scheme: BandScheme = "four_band") -> ScoreBand:
    bands = _SCHEMES[scheme]
    for threshold, band in bands:
        if score >= threshold:
            return band
    return bands[-1][1]


def render_assessment_text(assessment: QualityAssessment, scheme: BandScheme = "two_band") -> str:
    lines = [f"**Data Quality Assessment for {assessment.server_url}**", ""]
    for resource_type, item in assessment.per_resource.items():
        if not item.accessible:
            lines.append(f"❌ **{resource_type}**: Not accessible ({item.error or 'unknown error'})")
            continue
        lines.append(
            f"✅ **{resource_type}**: {item.total} resources available (score {round(item.score)}/100)"
        )
        for issue in item.issues:
            marker = "⚠️ " if issue.severity in {"warning", "error"} else "ℹ️ "
            lines.append(f"  {marker} {issue.severity.upper()}: {issue.details}")

    band = score_band(assessment.overall_score, scheme)
    lines.append("")
    lines.append(f"**Overall Score**: {round(assessment.overall_score)}/100")
    prefix = {"good": "✅", "EXCELLENT": "✅", "GOOD": "✅", "limited": "⚠️ ", "FAIR": "⚠️ "}.get(
        band.label, "❌"
    )
    lines.append(f"{prefix} {band.description}")
    return "\n".join(lines)


def assessment_summary(assessment: QualityAssessment, scheme: BandScheme = "four_band") -> dict:
    band = score_band(assessment.overall_score, scheme)
    return {
        "score": round(assessment.overall_score),
        "label": band.label,
        "description": band.description,
        "accessible": assessment.accessible_resources(),
        "issue_count": sum(len(item.issues) for item in assessment.per_resource.values()),
    }


__all__ = ["BandScheme", "ScoreBand", "score_band", "render_assessment_text", "assessment_summary"]

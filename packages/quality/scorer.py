from __future__ import annotations

import logging
from typing import Optional

from packages.core.errors import FHIRRequestError, HttpError
from packages.core.schemas.fhir import FHIRBundleView, Issue, OperationOutcomeView
from packages.core.schemas.quality import QualityAssessment, ResourceAssessment
from packages.fhir.fetcher import ResourceFetcher
from packages.fhir.interpreter import bundle_resources, interpret, subject_patient_id

logger = logging.getLogger(__name__)

TRACKED_RESOURCES = ("Patient", "Observation", "Condition", "MedicationRequest")
PAGE_SIZE = 10
REFERENCE_SAMPLE = 3

SEVERITY_PENALTIES = {"error": 30, "warning": 10, "info": 5}
EMPTY_PENALTY = 50
ORPHAN_PENALTY = 20


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def severity_score(issues: list[Issue], total: int) -> float:
    score = 100.0
    for issue in issues:
        score -= SEVERITY_PENALTIES.get(issue.severity, 0)
    if total == 0:
        score -= EMPTY_PENALTY
    return _clamp(score)


def _reports_empty(payload: dict, view: FHIRBundleView) -> bool:
    # A missing total still scores as zero but only counts as empty without entries.
    if "total" in payload:
        return view.total == 0
    return view.is_empty


def overall_score(per_resource: dict[str, ResourceAssessment]) -> float:
    """Mean over accessible resources only; inaccessible ones are left out of the denominator."""
    scores = [item.score for item in per_resource.values() if item.accessible]
    if not scores:
        return 0.0
    return _clamp(sum(scores) / len(scores))


class QualityScorer:
    """Scores one server as-is: requests go straight through the fetcher, without failover."""

    def __init__(self, fetcher: Optional[ResourceFetcher] = None) -> None:
        self.fetcher = fetcher or ResourceFetcher()

    def assess(self, server_url: str) -> QualityAssessment:
        per_resource = {
            resource_type: self.assess_resource(server_url, resource_type)
            for resource_type in TRACKED_RESOURCES
        }
        assessment = QualityAssessment(
            server_url=server_url,
            per_resource=per_resource,
            overall_score=overall_score(per_resource),
        )
        logger.info(
            "Assessed %s: overall=%.1f accessible=%s",
            server_url,
            assessment.overall_score,
            ",".join(assessment.accessible_resources()) or "none",
        )
        return assessment

    def assess_resource(self, server_url: str, resource_type: str) -> ResourceAssessment:
        try:
            payload = self.fetcher.fetch(server_url, resource_type, {"_count": PAGE_SIZE})
        except FHIRRequestError as exc:
            code = "http-error" if isinstance(exc, HttpError) else "network-error"
            logger.warning("%s not accessible on %s: %s", resource_type, server_url, exc)
            return ResourceAssessment(
                accessible=False,
                error=str(exc),
                issues=[Issue(severity="error", code=code, details=str(exc))],
            )

        view = interpret(payload)
        if isinstance(view, OperationOutcomeView):
            return ResourceAssessment(accessible=True, score=0.0, issues=view.issues)
        if not isinstance(view, FHIRBundleView):
            issue = Issue(
                severity="error",
                code="unexpected-response",
                details=f"Expected a Bundle, got {getattr(view, 'resource_type', 'unknown')}",
            )
            return ResourceAssessment(accessible=True, score=0.0, issues=[issue])

        issues: list[Issue] = []
        if _reports_empty(payload, view):
            issues.append(Issue(severity="info", code="empty-resource", details="No resources found"))
        score = severity_score(issues, view.total)

        if resource_type != "Patient" and not view.is_empty:
            orphaned = self.count_orphaned_references(server_url, bundle_resources(payload))
            if orphaned:
                issues.append(
                    Issue(
                        severity="warning",
                        code="orphaned-references",
                        details=f"Found {orphaned} orphaned patient references",
                    )
                )
                score = _clamp(score - ORPHAN_PENALTY)

        return ResourceAssessment(
            accessible=True,
            total=view.total,
            returned=len(view.entries),
            score=score,
            issues=issues,
        )

    def count_orphaned_references(self, server_url: str, resources: list[dict]) -> int:
        orphaned = 0
        for resource in resources[:REFERENCE_SAMPLE]:
            patient_id = subject_patient_id(resource)
            if not patient_id:
                continue
            try:
                self.fetcher.fetch(server_url, f"Patient/{patient_id}")
            except HttpError as exc:
                if exc.status != 404:
                    logger.debug("Reference Patient/%s not checked: %s", patient_id, exc)
                    continue
                logger.debug("Reference Patient/%s unresolved: %s", patient_id, exc)
                orphaned += 1
            except FHIRRequestError as exc:
                logger.debug("Reference Patient/%s unresolved: %s", patient_id, exc)
                orphaned += 1
        return orphaned


__all__ = [
    "TRACKED_RESOURCES",
    "QualityScorer",
    "severity_score",
    "overall_score",
]

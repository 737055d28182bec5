import pytest

from packages.core.errors import HttpError, NetworkError
from packages.core.schemas.fhir import Issue
from packages.core.schemas.quality import ResourceAssessment
from packages.quality.report import assessment_summary, render_assessment_text, score_band
from packages.quality.scorer import QualityScorer, overall_score, severity_score
from tests.fhir_fakes import FakeFetcher, bundle, patient

SERVER = "https://fhir.test/baseR4"


def _observation(observation_id: str, patient_id: str) -> dict:
    return {
        "resourceType": "Observation",
        "id": observation_id,
        "code": {"text": "Heart rate"},
        "subject": {"reference": f"Patient/{patient_id}"},
    }


def _scenario_handler(base, path, params):
    if path == "Patient":
        return bundle(patient("p1", "Ada", "Lovelace"), total=5)
    if path == "Observation":
        return bundle(_observation("o1", "p1"), total=3)
    if path == "Condition":
        raise HttpError(500, "Internal Server Error")
    if path == "MedicationRequest":
        return bundle(total=0)
    if path == "Patient/p1":
        return patient("p1", "Ada", "Lovelace")
    raise AssertionError(path)


def test_inaccessible_resource_is_excluded_from_overall() -> None:
    assessment = QualityScorer(FakeFetcher(_scenario_handler)).assess(SERVER)

    condition = assessment.per_resource["Condition"]
    assert condition.accessible is False
    assert "HTTP 500" in condition.error
    assert [(issue.severity, issue.code) for issue in condition.issues] == [("error", "http-error")]

    assert assessment.per_resource["Patient"].score == 100
    assert assessment.per_resource["Observation"].score == 100
    medications = assessment.per_resource["MedicationRequest"]
    assert medications.score == 45
    assert [issue.code for issue in medications.issues] == ["empty-resource"]

    assert assessment.overall_score == pytest.approx((100 + 100 + 45) / 3)
    assert assessment.accessible_resources() == ["Patient", "Observation", "MedicationRequest"]


def test_orphaned_references_cost_twenty_points() -> None:
    def handler(base, path, params):
        if path == "Observation":
            return bundle(*[_observation(f"o{i}", f"gone{i}") for i in range(5)], total=5)
        if path.startswith("Patient/"):
            raise HttpError(404, "Not Found")
        return bundle(patient("p1", "Ada", "Lovelace"))

    fetcher = FakeFetcher(handler)
    item = QualityScorer(fetcher).assess_resource(SERVER, "Observation")

    assert item.score == 80
    assert item.issues[-1].code == "orphaned-references"
    assert item.issues[-1].details == "Found 3 orphaned patient references"
    assert [path for path in fetcher.paths() if path.startswith("Patient/")] == [
        "Patient/gone0",
        "Patient/gone1",
        "Patient/gone2",
    ]


def test_operation_outcome_scores_zero() -> None:
    def handler(base, path, params):
        return {"resourceType": "OperationOutcome", "issue": [{"severity": "error", "code": "exception"}]}

    item = QualityScorer(FakeFetcher(handler)).assess_resource(SERVER, "Patient")
    assert item.accessible is True
    assert item.score == 0


def test_nothing_accessible_gives_zero_overall() -> None:
    def handler(base, path, params):
        raise HttpError(503, "Service Unavailable")

    assessment = QualityScorer(FakeFetcher(handler)).assess(SERVER)
    assert assessment.overall_score == 0
    assert assessment.accessible_resources() == []


def test_scores_are_clamped() -> None:
    issues = [Issue(severity="error", code="x", details="x")] * 5
    assert severity_score(issues, total=0) == 0
    assert severity_score([], total=10) == 100
    assert overall_score({"Patient": ResourceAssessment(accessible=False, score=0)}) == 0


@pytest.mark.parametrize(
    ("score", "four_band", "two_band"),
    [
        (100, "EXCELLENT", "good"),
        (80, "EXCELLENT", "good"),
        (79.9, "GOOD", "limited"),
        (60, "GOOD", "limited"),
        (50, "FAIR", "limited"),
        (40, "FAIR", "poor"),
        (39, "POOR", "poor"),
        (0, "POOR", "poor"),
    ],
)
def test_score_bands(score: float, four_band: str, two_band: str) -> None:
    assert score_band(score, "four_band").label == four_band
    assert score_band(score, "two_band").label == two_band


def test_render_assessment_text() -> None:
    assessment = QualityScorer(FakeFetcher(_scenario_handler)).assess(SERVER)
    text = render_assessment_text(assessment)

    assert text.startswith(f"**Data Quality Assessment for {SERVER}**")
    assert "✅ **Patient**: 5 resources available" in text
    assert "❌ **Condition**: Not accessible (HTTP 500: Internal Server Error)" in text
    assert "**Overall Score**: 82/100" in text
    assert "This server has good data availability" in text

    summary = assessment_summary(assessment, "four_band")
    assert summary["label"] == "EXCELLENT"
    assert summary["score"] == 82
    assert summary["issue_count"] == 2


def test_server_errors_on_reference_lookup_are_not_orphans() -> None:
    def handler(base, path, params):
        if path == "Observation":
            return bundle(_observation("o1", "p1"), total=1)
        if path == "Patient/p1":
            raise HttpError(500, "Internal Server Error")
        raise AssertionError(path)

    item = QualityScorer(FakeFetcher(handler)).assess_resource(SERVER, "Observation")

    assert item.score == 100
    assert item.issues == []


def test_unreachable_reference_lookup_counts_as_orphan() -> None:
    def handler(base, path, params):
        if path == "Condition":
            return bundle({"resourceType": "Condition", "id": "c1", "subject": {"reference": "Patient/p1"}})
        raise NetworkError("connection reset")

    item = QualityScorer(FakeFetcher(handler)).assess_resource(SERVER, "Condition")

    assert item.score == 80
    assert [issue.code for issue in item.issues] == ["orphaned-references"]


def test_bundle_without_total_and_with_entries_is_not_reported_empty() -> None:
    payload = bundle(patient("p1", "Ada", "Lovelace"), patient("p2", "Alan", "Turing"))
    del payload["total"]

    item = QualityScorer(FakeFetcher(lambda base, path, params: payload)).assess_resource(SERVER, "Patient")

    assert item.returned == 2
    assert item.total == 0
    assert item.issues == []
    assert item.score == 50


def test_bundle_without_total_or_entries_is_reported_empty() -> None:
    payload = {"resourceType": "Bundle", "type": "searchset"}

    item = QualityScorer(FakeFetcher(lambda base, path, params: payload)).assess_resource(SERVER, "Patient")

    assert [issue.code for issue in item.issues] == ["empty-resource"]
    assert item.score == 45


def test_clean_server_scores_one_hundred() -> None:
    def handler(base, path, params):
        if path == "Patient":
            return bundle(patient("p1", "Ada", "Lovelace"), total=12)
        if path == "Patient/p1":
            return patient("p1", "Ada", "Lovelace")
        if path == "Observation":
            return bundle(_observation("o1", "p1"), total=4)
        if path == "Condition":
            return bundle({"resourceType": "Condition", "id": "c1", "subject": {"reference": "Patient/p1"}})
        if path == "MedicationRequest":
            return bundle(
                {"resourceType": "MedicationRequest", "id": "m1", "subject": {"reference": "Patient/p1"}},
                total=7,
            )
        raise AssertionError(path)

    assessment = QualityScorer(FakeFetcher(handler)).assess(SERVER)

    assert assessment.accessible_resources() == ["Patient", "Observation", "Condition", "MedicationRequest"]
    assert all(item.issues == [] for item in assessment.per_resource.values())
    assert assessment.overall_score == 100

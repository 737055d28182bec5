import pytest

from packages.fhir.samples import find_sample, sample_response


@pytest.mark.parametrize(
    ("resource_type", "count"),
    [("Patient", 3), ("Condition", 2), ("Observation", 1), ("CarePlan", 0), ("MedicationRequest", 0)],
)
def test_sample_bundle_sizes(resource_type: str, count: int) -> None:
    payload = sample_response(resource_type)

    assert payload["resourceType"] == "Bundle"
    assert payload["total"] == count
    assert len(payload["entry"]) == count
    assert all(entry["resource"]["resourceType"] == resource_type for entry in payload["entry"])


def test_sample_read_by_id() -> None:
    assert sample_response("Patient/sample-patient-1")["id"] == "sample-patient-1"
    unknown = sample_response("Patient/does-not-exist")
    assert unknown["resourceType"] == "Bundle"
    assert unknown["entry"] == []


def test_samples_are_copies() -> None:
    find_sample("Patient", "sample-patient-1")["id"] = "changed"
    assert find_sample("Patient", "sample-patient-1")["id"] == "sample-patient-1"

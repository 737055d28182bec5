from __future__ import annotations

import copy
from typing import Optional

SAMPLE_PATIENTS = [
    {
        "resourceType": "Patient",
        "id": "sample-patient-1",
        "name": [{"given": ["Maria"], "family": "Garcia"}],
        "gender": "female",
        "birthDate": "1967-09-14",
        "address": [{"city": "Boston", "state": "MA", "country": "US"}],
    },
    {
        "resourceType": "Patient",
        "id": "sample-patient-2",
        "name": [{"given": ["James"], "family": "Wilson"}],
        "gender": "male",
        "birthDate": "1954-02-03",
    },
    {
        "resourceType": "Patient",
        "id": "sample-patient-3",
        "name": [{"given": ["Aiko"], "family": "Tanaka"}],
        "gender": "female",
        "birthDate": "1989-11-21",
    },
]

SAMPLE_CONDITIONS = [
    {
        "resourceType": "Condition",
        "id": "sample-condition-1",
        "clinicalStatus": {"coding": [{"code": "active"}]},
        "code": {
            "coding": [
                {
                    "system": "http://snomed.info/sct",
                    "code": "44054006",
                    "display": "Type 2 Diabetes",
                }
            ],
            "text": "Type 2 Diabetes",
        },
        "subject": {"reference": "Patient/sample-patient-1"},
        "onsetDateTime": "2015-04-02",
    },
    {
        "resourceType": "Condition",
        "id": "sample-condition-2",
        "clinicalStatus": {"coding": [{"code": "active"}]},
        "code": {
            "coding": [
                {
                    "system": "http://snomed.info/sct",
                    "code": "38341003",
                    "display": "Hypertension",
                }
            ],
            "text": "Hypertension",
        },
        "subject": {"reference": "Patient/sample-patient-2"},
        "onsetDateTime": "2010-08-19",
    },
]

SAMPLE_OBSERVATIONS = [
    {
        "resourceType": "Observation",
        "id": "sample-observation-1",
        "status": "final",
        "code": {
            "coding": [
                {"system": "http://loinc.org", "code": "4548-4", "display": "Hemoglobin A1c"}
            ],
            "text": "Hemoglobin A1c",
        },
        "subject": {"reference": "Patient/sample-patient-1"},
        "effectiveDateTime": "2024-01-15",
        "valueQuantity": {"value": 7.1, "unit": "%"},
    },
]

_SAMPLES = {
    "Patient": SAMPLE_PATIENTS,
    "Condition": SAMPLE_CONDITIONS,
    "Observation": SAMPLE_OBSERVATIONS,
}


def _bundle(resources: list[dict]) -> dict:
    return {
        "resourceType": "Bundle",
        "type": "searchset",
        "total": len(resources),
        "entry": [{"resource": copy.deepcopy(resource)} for resource in resources],
    }


def sample_response(path: str) -> dict:
    """Canned answer for a resource path; always a well-formed Bundle or resource."""
    resource_type, _, resource_id = path.strip("/").partition("/")
    resources = _SAMPLES.get(resource_type, [])
    if resource_id:
        found = find_sample(resource_type, resource_id)
        if found is not None:
            return found
        return _bundle([])
    return _bundle(resources)


def find_sample(resource_type: str, resource_id: str) -> Optional[dict]:
    for resource in _SAMPLES.get(resource_type, []):
        if resource.get("id") == resource_id:
            return copy.deepcopy(resource)
    return None


__all__ = ["sample_response", "find_sample", "SAMPLE_PATIENTS", "SAMPLE_CONDITIONS", "SAMPLE_OBSERVATIONS"]

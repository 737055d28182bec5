from __future__ import annotations

from typing import Any, Optional, Union

from packages.core.schemas.fhir import (
    AnyResourceView,
    CarePlanView,
    ConditionView,
    EncounterView,
    FHIRBundleView,
    GenericResourceView,
    Issue,
    MedicationRequestView,
    ObservationView,
    OperationOutcomeView,
    PatientView,
)

UNKNOWN_NAME = "Unknown Name"
UNKNOWN_CODE = "Unknown"
NO_VALUE = "No value recorded"

_SEVERITIES = {"info", "warning", "error"}


def _first_item(items: Any) -> Optional[dict]:
    if isinstance(items, list) and items:
        item = items[0]
        return item if isinstance(item, dict) else None
    return None


def _string_value(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def format_name(names: Any) -> str:
    name = _first_item(names)
    if not name:
        return UNKNOWN_NAME
    given = name.get("given") or []
    given_str = " ".join(part for part in given if isinstance(part, str)) if isinstance(given, list) else ""
    family = _string_value(name.get("family")) or ""
    full_name = f"{given_str} {family}".strip()
    return full_name or UNKNOWN_NAME


def code_text(codeable: Any) -> str:
    if not isinstance(codeable, dict):
        return UNKNOWN_CODE
    text = _string_value(codeable.get("text"))
    if text:
        return text
    coding = _first_item(codeable.get("coding"))
    if coding:
        return _string_value(coding.get("display")) or _string_value(coding.get("code")) or UNKNOWN_CODE
    return UNKNOWN_CODE


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def observation_value(observation: dict) -> str:
    quantity = observation.get("valueQuantity")
    if isinstance(quantity, dict):
        unit = _string_value(quantity.get("unit")) or ""
        return f"{_format_number(quantity.get('value'))} {unit}".strip()
    value_string = _string_value(observation.get("valueString"))
    if value_string:
        return value_string
    if isinstance(observation.get("valueCodeableConcept"), dict):
        return code_text(observation["valueCodeableConcept"])
    return NO_VALUE


def reference_id(reference: Any) -> Optional[str]:
    """Last path segment of a reference object or string, e.g. Patient/123 -> 123."""
    if isinstance(reference, dict):
        reference = reference.get("reference")
    if not isinstance(reference, str) or not reference:
        return None
    return reference.rstrip("/").split("/")[-1] or None


def subject_patient_id(resource: dict) -> Optional[str]:
    subject = resource.get("subject") or resource.get("patient")
    if not isinstance(subject, dict):
        return None
    ref = _string_value(subject.get("reference"))
    if ref and "/" in ref and not ref.startswith("Patient/") and "/Patient/" not in ref:
        return None
    return reference_id(ref)


def clinical_status(resource: dict) -> str:
    status = resource.get("clinicalStatus")
    if isinstance(status, dict):
        coding = _first_item(status.get("coding"))
        if coding and _string_value(coding.get("code")):
            return coding["code"]
    return "unknown"


def _patient_view(resource: dict) -> PatientView:
    address = _first_item(resource.get("address")) or {}
    return PatientView(
        id=_string_value(resource.get("id")),
        status=None,
        name=format_name(resource.get("name")),
        gender=_string_value(resource.get("gender")),
        birth_date=_string_value(resource.get("birthDate")),
        city=_string_value(address.get("city")),
        state=_string_value(address.get("state")),
        country=_string_value(address.get("country")),
    )


def _condition_view(resource: dict) -> ConditionView:
    return ConditionView(
        id=_string_value(resource.get("id")),
        code_text=code_text(resource.get("code")),
        clinical_status=clinical_status(resource),
        onset=_string_value(resource.get("onsetDateTime")),
        patient_id=subject_patient_id(resource),
    )


def _observation_view(resource: dict) -> ObservationView:
    return ObservationView(
        id=_string_value(resource.get("id")),
        status=_string_value(resource.get("status")),
        code_text=code_text(resource.get("code")),
        value=observation_value(resource),
        effective=_string_value(resource.get("effectiveDateTime"))
        or _string_value(resource.get("issued")),
        patient_id=subject_patient_id(resource),
    )


def _medication_view(resource: dict) -> MedicationRequestView:
    medication = resource.get("medicationCodeableConcept")
    if not isinstance(medication, dict):
        medication_ref = resource.get("medicationReference")
        medication = {"text": medication_ref.get("display")} if isinstance(medication_ref, dict) else None
    dosage = _first_item(resource.get("dosageInstruction")) or {}
    return MedicationRequestView(
        id=_string_value(resource.get("id")),
        status=_string_value(resource.get("status")),
        medication=code_text(medication),
        intent=_string_value(resource.get("intent")),
        authored_on=_string_value(resource.get("authoredOn")),
        dosage=_string_value(dosage.get("text")),
        patient_id=subject_patient_id(resource),
    )


def _care_plan_view(resource: dict) -> CarePlanView:
    return CarePlanView(
        id=_string_value(resource.get("id")),
        status=_string_value(resource.get("status")),
        title=_string_value(resource.get("title")) or "Untitled Plan",
        intent=_string_value(resource.get("intent")),
        created=_string_value(resource.get("created")),
        patient_id=subject_patient_id(resource),
    )


def _encounter_view(resource: dict) -> EncounterView:
    period = resource.get("period") if isinstance(resource.get("period"), dict) else {}
    return EncounterView(
        id=_string_value(resource.get("id")),
        status=_string_value(resource.get("status")),
        type_text=code_text(_first_item(resource.get("type"))),
        start=_string_value(period.get("start")),
        patient_id=subject_patient_id(resource),
    )


_VIEW_BUILDERS = {
    "Patient": _patient_view,
    "Condition": _condition_view,
    "Observation": _observation_view,
    "MedicationRequest": _medication_view,
    "CarePlan": _care_plan_view,
    "Encounter": _encounter_view,
}


def resource_view(resource: dict) -> AnyResourceView:
    resource_type = _string_value(resource.get("resourceType")) or "Unknown"
    builder = _VIEW_BUILDERS.get(resource_type)
    if builder is not None:
        return builder(resource)
    return GenericResourceView(
        resource_type=resource_type,
        id=_string_value(resource.get("id")),
        status=_string_value(resource.get("status")),
        patient_id=subject_patient_id(resource),
    )


def bundle_resources(payload: Any) -> list[dict]:
    """Raw entry resources of a Bundle, skipping malformed entries."""
    if not isinstance(payload, dict) or payload.get("resourceType") != "Bundle":
        return []
    entries = payload.get("entry") or []
    if not isinstance(entries, list):
        return []
    resources = []
    for entry in entries:
        if isinstance(entry, dict) and isinstance(entry.get("resource"), dict):
            resources.append(entry["resource"])
    return resources


def _bundle_total(payload: dict) -> int:
    total = payload.get("total")
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        return 0
    return total


def _outcome_view(payload: dict) -> OperationOutcomeView:
    issues = []
    for raw in payload.get("issue") or []:
        if not isinstance(raw, dict):
            continue
        severity = raw.get("severity")
        details = raw.get("details") if isinstance(raw.get("details"), dict) else {}
        issues.append(
            Issue(
                severity=severity if severity in _SEVERITIES else "error",
                code=_string_value(raw.get("code")) or "unknown",
                details=_string_value(details.get("text"))
                or _string_value(raw.get("diagnostics"))
                or "No details",
            )
        )
    return OperationOutcomeView(issues=issues, valid=False)


def interpret(payload: Any) -> Union[FHIRBundleView, OperationOutcomeView, AnyResourceView]:
    """Dispatch a fetched FHIR JSON object on its resourceType."""
    if not isinstance(payload, dict):
        return OperationOutcomeView(
            issues=[Issue(severity="error", code="invalid-response", details="Response is not a JSON object")]
        )
    resource_type = payload.get("resourceType")
    if resource_type == "Bundle":
        resources = bundle_resources(payload)
        entry_types = {resource.get("resourceType") for resource in resources}
        return FHIRBundleView(
            resource_type=entry_types.pop() if len(entry_types) == 1 else None,
            total=_bundle_total(payload),
            entries=[resource_view(resource) for resource in resources],
        )
    if resource_type == "OperationOutcome":
        return _outcome_view(payload)
    return resource_view(payload)


__all__ = [
    "UNKNOWN_NAME",
    "NO_VALUE",
    "format_name",
    "code_text",
    "observation_value",
    "reference_id",
    "subject_patient_id",
    "clinical_status",
    "resource_view",
    "bundle_resources",
    "interpret",
]

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

Severity = Literal["info", "warning", "error"]


class Issue(BaseModel):
    severity: Severity
    code: str
    details: str


class ResourceView(BaseModel):
    """Read-only projection of one FHIR resource, built from raw JSON."""
    resource_type: str
    id: Optional[str] = None
    status: Optional[str] = None


class PatientView(ResourceView):
    resource_type: str = "Patient"
    name: str = "Unknown Name"
    gender: Optional[str] = None
    birth_date: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class ConditionView(ResourceView):
    resource_type: str = "Condition"
    code_text: str = "Unknown"
    clinical_status: str = "unknown"
    onset: Optional[str] = None
    patient_id: Optional[str] = None


class ObservationView(ResourceView):
    resource_type: str = "Observation"
    code_text: str = "Unknown"
    value: str = "No value recorded"
    effective: Optional[str] = None
    patient_id: Optional[str] = None


class MedicationRequestView(ResourceView):
    resource_type: str = "MedicationRequest"
    medication: str = "Unknown"
    intent: Optional[str] = None
    authored_on: Optional[str] = None
    dosage: Optional[str] = None
    patient_id: Optional[str] = None


class CarePlanView(ResourceView):
    resource_type: str = "CarePlan"
    title: str = "Untitled Plan"
    intent: Optional[str] = None
    created: Optional[str] = None
    patient_id: Optional[str] = None


class EncounterView(ResourceView):
    resource_type: str = "Encounter"
    type_text: str = "Unknown"
    start: Optional[str] = None
    patient_id: Optional[str] = None


class GenericResourceView(ResourceView):
    patient_id: Optional[str] = None


AnyResourceView = Union[
    PatientView,
    ConditionView,
    ObservationView,
    MedicationRequestView,
    CarePlanView,
    EncounterView,
    GenericResourceView,
]


class FHIRBundleView(BaseModel):
    resource_type: Optional[str] = None
    total: int = 0
    entries: List[AnyResourceView] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entries


class OperationOutcomeView(BaseModel):
    issues: List[Issue] = Field(default_factory=list)
    valid: bool = False


__all__ = [
    "Severity",
    "Issue",
    "ResourceView",
    "PatientView",
    "ConditionView",
    "ObservationView",
    "MedicationRequestView",
    "CarePlanView",
    "EncounterView",
    "GenericResourceView",
    "AnyResourceView",
    "FHIRBundleView",
    "OperationOutcomeView",
]

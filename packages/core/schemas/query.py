from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Intent(BaseModel):
    model_config = ConfigDict(frozen=True)


class ListPatients(_Intent):
    kind: Literal["list_patients"] = "list_patients"


class PatientById(_Intent):
    kind: Literal["patient_by_id"] = "patient_by_id"
    patient_id: str


class PatientByName(_Intent):
    kind: Literal["patient_by_name"] = "patient_by_name"
    name: str


class PatientsByCondition(_Intent):
    kind: Literal["patients_by_condition"] = "patients_by_condition"
    condition: str


class PatientsByGender(_Intent):
    kind: Literal["patients_by_gender"] = "patients_by_gender"
    gender: str


class PatientsByAgeApprox(_Intent):
    kind: Literal["patients_by_age"] = "patients_by_age"
    age: Optional[int] = None


class PatientsByBirthRange(_Intent):
    kind: Literal["patients_by_birth_range"] = "patients_by_birth_range"
    start: Optional[str] = None
    end: Optional[str] = None


class Observations(_Intent):
    kind: Literal["observations"] = "observations"
    patient_id: Optional[str] = None


class Medications(_Intent):
    kind: Literal["medications"] = "medications"
    patient_id: Optional[str] = None


class Conditions(_Intent):
    kind: Literal["conditions"] = "conditions"
    patient_id: Optional[str] = None


class CarePlans(_Intent):
    kind: Literal["care_plans"] = "care_plans"
    patient_id: Optional[str] = None


class AssessQuality(_Intent):
    kind: Literal["assess_quality"] = "assess_quality"


class ClinicalSummary(_Intent):
    kind: Literal["clinical_summary"] = "clinical_summary"
    patient_id: Optional[str] = None
    name: Optional[str] = None


class ConditionPatientsOverAge(_Intent):
    kind: Literal["condition_patients_over_age"] = "condition_patients_over_age"
    condition: str
    min_age: int


class AboutAssistant(_Intent):
    kind: Literal["about_assistant"] = "about_assistant"


class Unknown(_Intent):
    kind: Literal["unknown"] = "unknown"
    help_text: str = ""


QueryIntent = Union[
    ListPatients,
    PatientById,
    PatientByName,
    PatientsByCondition,
    PatientsByGender,
    PatientsByAgeApprox,
    PatientsByBirthRange,
    Observations,
    Medications,
    Conditions,
    CarePlans,
    AssessQuality,
    ClinicalSummary,
    ConditionPatientsOverAge,
    AboutAssistant,
    Unknown,
]

ResultType = Literal["success", "warning", "error", "info"]


class FormattedResult(BaseModel):
    type: ResultType
    content: str


class FhirOperation(BaseModel):
    resource: str = "Patient"
    operation: Literal["search", "read"] = "search"
    parameters: Dict[str, Any] = Field(default_factory=dict)
    purpose: str = ""


class ActionPlan(BaseModel):
    reasoning: str = ""
    fhir_operations: List[FhirOperation] = Field(default_factory=list)
    response_format: str = ""
    fallback: bool = False
    error: Optional[str] = None


__all__ = [
    "ListPatients",
    "PatientById",
    "PatientByName",
    "PatientsByCondition",
    "PatientsByGender",
    "PatientsByAgeApprox",
    "PatientsByBirthRange",
    "Observations",
    "Medications",
    "Conditions",
    "CarePlans",
    "AssessQuality",
    "ClinicalSummary",
    "ConditionPatientsOverAge",
    "AboutAssistant",
    "Unknown",
    "QueryIntent",
    "ResultType",
    "FormattedResult",
    "FhirOperation",
    "ActionPlan",
]

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from packages.core.errors import AllStrategiesExhausted, FHIRRequestError, HttpError
from packages.core.schemas.fhir import (
    AnyResourceView,
    CarePlanView,
    ConditionView,
    EncounterView,
    FHIRBundleView,
    MedicationRequestView,
    ObservationView,
    OperationOutcomeView,
    PatientView,
)
from packages.core.schemas.query import (
    ActionPlan,
    FhirOperation,
    FormattedResult,
    PatientById,
    QueryIntent,
)
from packages.fhir.interpreter import interpret
from packages.fhir.transport import ResilientTransport
from packages.quality.report import render_assessment_text
from packages.quality.scorer import QualityScorer
from packages.query.classifier import approximate_birth_year

logger = logging.getLogger(__name__)

LIST_PAGE = 10
SEARCH_PAGE = 20
CONDITION_PAGE = 100
CLINICAL_PAGE = 5
MAX_RESOLVED_PATIENTS = 5
MAX_AGE_FILTERED_PATIENTS = 10
MAX_LISTED = 10

ABOUT_TEXT = (
    "I translate your questions into FHIR REST searches. With Smart Mode on and an "
    "OpenAI or Anthropic API key configured, a cloud model plans the FHIR operations; "
    "otherwise, or whenever the model is unavailable, I fall back to built-in pattern "
    "matching."
)

class QueryError(RuntimeError):
    pass


QueryFailure = (FHIRRequestError, AllStrategiesExhausted, QueryError)


def _date(value: Optional[str], default: str = "Unknown date") -> str:
    if not value:
        return default
    return value[:10]


def _age_from_birth_date(birth_date: Optional[str], today: Optional[date] = None) -> Optional[int]:
    if not birth_date or not re.match(r"^\d{4}-\d{2}-\d{2}", birth_date):
        return None
    today = today or date.today()
    try:
        born = date(int(birth_date[0:4]), int(birth_date[5:7]), int(birth_date[8:10]))
    except ValueError:
        return None
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def format_patient_block(patient: PatientView, *, gender: bool = True, age: bool = False) -> str:
    lines = [f"**{patient.name}**", f"- ID: {patient.id}"]
    if gender:
        lines.append(f"- Gender: {patient.gender or 'Unknown'}")
    birth = f"- Birth Date: {patient.birth_date or 'Unknown'}"
    calculated = _age_from_birth_date(patient.birth_date) if age else None
    if calculated is not None:
        birth += f" (age {calculated})"
    lines.append(birth)
    return "\n".join(lines)


def format_observation(observation: ObservationView) -> str:
    return "\n".join(
        [
            f"📊 **{observation.code_text}**",
            f"- Value: {observation.value}",
            f"- Date: {_date(observation.effective)}",
            f"- Status: {observation.status or 'unknown'}",
        ]
    )


def format_medication(medication: MedicationRequestView, *, dosage: bool = False) -> str:
    lines = [
        f"💊 **{medication.medication}**",
        f"- Status: {medication.status or 'unknown'}",
        f"- Intent: {medication.intent or 'unknown'}",
        f"- Prescribed: {_date(medication.authored_on)}",
    ]
    if dosage and medication.dosage:
        lines.append(f"- Dosage: {medication.dosage}")
    return "\n".join(lines)


def format_condition(condition: ConditionView) -> str:
    lines = [
        f"🏥 **{condition.code_text}**",
        f"- Clinical Status: {condition.clinical_status}",
        f"- Onset: {_date(condition.onset, 'Unknown')}",
    ]
    if condition.patient_id:
        lines.append(f"- Patient ID: {condition.patient_id}")
    return "\n".join(lines)


def format_care_plan(plan: CarePlanView) -> str:
    return "\n".join(
        [
            f"📋 **{plan.title}**",
            f"- Status: {plan.status or 'unknown'}",
            f"- Created: {_date(plan.created, 'Unknown')}",
            f"- Intent: {plan.intent or 'unknown'}",
        ]
    )


def format_encounter(encounter: EncounterView) -> str:
    return "\n".join(
        [
            f"🩺 **{encounter.type_text}**",
            f"- Status: {encounter.status or 'unknown'}",
            f"- Start: {_date(encounter.start, 'Unknown')}",
        ]
    )


def format_view(view: AnyResourceView) -> str:
    if isinstance(view, PatientView):
        return format_patient_block(view)
    if isinstance(view, ObservationView):
        return format_observation(view)
    if isinstance(view, MedicationRequestView):
        return format_medication(view, dosage=True)
    if isinstance(view, ConditionView):
        return format_condition(view)
    if isinstance(view, CarePlanView):
        return format_care_plan(view)
    if isinstance(view, EncounterView):
        return format_encounter(view)
    return f"**{view.resource_type}/{view.id}** ({view.status or 'unknown status'})"


def _success(content: str) -> FormattedResult:
    return FormattedResult(type="success", content=content)


def _warning(content: str) -> FormattedResult:
    return FormattedResult(type="warning", content=content)


def _info(content: str) -> FormattedResult:
    return FormattedResult(type="info", content=content)


def _error(content: str) -> FormattedResult:
    return FormattedResult(type="error", content=content)


def _found(bundle: FHIRBundleView) -> int:
    return bundle.total or len(bundle.entries)


class QueryExecutor:
    """Runs one QueryIntent against the transport and renders the answer as text."""

    def __init__(
        self,
        transport: ResilientTransport,
        scorer: Optional[QualityScorer] = None,
    ) -> None:
        self.transport = transport
        self.scorer = scorer or QualityScorer(transport.fetcher)
        self._handlers: Dict[str, Tuple[Callable[[Any], FormattedResult], str]] = {
            "list_patients": (self._list_patients, "Failed to fetch patients"),
            "patient_by_id": (self._patient_by_id, "Failed to fetch patient"),
            "patient_by_name": (self._patient_by_name, "Failed to search patients by name"),
            "patients_by_condition": (self._patients_by_condition, "Failed to search conditions"),
            "patients_by_gender": (self._patients_by_gender, "Failed to search patients by gender"),
            "patients_by_age": (self._patients_by_age, "Failed to search patients by age"),
            "patients_by_birth_range": (
                self._patients_by_birth_range,
                "Failed to search patients by birth date",
            ),
            "observations": (self._observations, "Failed to fetch observations"),
            "medications": (self._medications, "Failed to fetch medications"),
            "conditions": (self._conditions, "Failed to fetch conditions"),
            "care_plans": (self._care_plans, "Failed to fetch care plans"),
            "assess_quality": (self._assess_quality, "Failed to assess data quality"),
            "clinical_summary": (self._clinical_summary, "Failed to build clinical summary"),
            "condition_patients_over_age": (
                self._condition_patients_over_age,
                "Failed to search conditions",
            ),
            "about_assistant": (lambda _intent: _info(ABOUT_TEXT), "Failed"),
            "unknown": (lambda intent: _info(intent.help_text), "Failed"),
        }

    def execute(self, intent: QueryIntent) -> FormattedResult:
        handler, failure = self._handlers[intent.kind]
        try:
            return handler(intent)
        except QueryFailure as exc:
            logger.warning("%s for %s: %s", failure, intent.kind, exc)
            return _error(f"{failure}: {exc}")

    # -- transport helpers -------------------------------------------------

    def _search(self, resource_type: str, params: Optional[Dict[str, Any]] = None) -> FHIRBundleView:
        view = interpret(self.transport.request(resource_type, params))
        if isinstance(view, OperationOutcomeView):
            details = "; ".join(issue.details for issue in view.issues) or "OperationOutcome returned"
            raise QueryError(details)
        if isinstance(view, FHIRBundleView):
            return view
        return FHIRBundleView(resource_type=view.resource_type, total=1, entries=[view])

    def _read(self, resource_type: str, resource_id: str) -> AnyResourceView:
        path = f"{resource_type}/{resource_id}"
        view = interpret(self.transport.request(path))
        if isinstance(view, OperationOutcomeView):
            details = "; ".join(issue.details for issue in view.issues) or "OperationOutcome returned"
            raise QueryError(details)
        if isinstance(view, FHIRBundleView):
            if len(view.entries) == 1 and view.entries[0].id == resource_id:
                return view.entries[0]
            raise HttpError(404, f"{path} not found")
        return view

    def _read_patient(self, patient_id: str) -> PatientView:
        view = self._read("Patient", patient_id)
        if not isinstance(view, PatientView):
            raise QueryError(f"Patient/{patient_id} returned {view.resource_type}")
        return view

    # -- patient handlers --------------------------------------------------

    def _list_patients(self, _intent) -> FormattedResult:
        bundle = self._search("Patient", {"_count": LIST_PAGE})
        if bundle.is_empty:
            return _warning("No patients found in this server.")
        blocks = [format_patient_block(patient) for patient in bundle.entries]
        header = f"Found {_found(bundle)} patients. Here are the first {len(bundle.entries)}:"
        return _success("\n\n".join([header, *blocks]))

    def _patient_by_id(self, intent) -> FormattedResult:
        try:
            return _success(self.patient_detail(intent.patient_id))
        except HttpError as exc:
            if exc.status == 404:
                return _error(f'Patient with ID "{intent.patient_id}" not found.')
            raise
        except AllStrategiesExhausted as exc:
            if any(attempt.status == 404 for attempt in exc.attempts):
                return _error(f'Patient with ID "{intent.patient_id}" not found.')
            raise

    def patient_detail(self, patient_id: str) -> str:
        patient = self._read_patient(patient_id)
        lines = [
            f"**Patient: {patient.name}**",
            "",
            f"🆔 **ID**: {patient.id}",
            f"👤 **Gender**: {patient.gender or 'Unknown'}",
            f"📅 **Birth Date**: {patient.birth_date or 'Unknown'}",
        ]
        if patient.city or patient.state or patient.country:
            lines.append(
                f"📍 **Location**: {patient.city or ''}, {patient.state or ''} {patient.country or ''}".rstrip()
            )
        lines.extend(["", "**Clinical Data Summary:**"])

        # Dependent lookups run one after the other; a failure stays inline.
        try:
            conditions = self._search("Condition", {"patient": patient_id, "_count": CLINICAL_PAGE})
            lines.append("")
            if conditions.is_empty:
                lines.append("📋 **Conditions**: None recorded")
            else:
                lines.append(f"📋 **Conditions** ({_found(conditions)} total):")
                for condition in conditions.entries:
                    if isinstance(condition, ConditionView):
                        lines.append(f"- {condition.code_text} ({condition.clinical_status})")
        except QueryFailure as exc:
            logger.info("Conditions for %s unavailable: %s", patient_id, exc)
            lines.extend(["", "📋 **Conditions**: Unable to fetch"])

        try:
            medications = self._search(
                "MedicationRequest", {"patient": patient_id, "_count": CLINICAL_PAGE}
            )
            lines.append("")
            if medications.is_empty:
                lines.append("💊 **Medications**: None recorded")
            else:
                lines.append(f"💊 **Medications** ({_found(medications)} total):")
                for medication in medications.entries:
                    if isinstance(medication, MedicationRequestView):
                        lines.append(f"- {medication.medication} ({medication.status or 'unknown'})")
        except QueryFailure as exc:
            logger.info("Medications for %s unavailable: %s", patient_id, exc)
            lines.extend(["", "💊 **Medications**: Unable to fetch"])

        return "\n".join(lines)

    def find_patients_by_name(self, name: str) -> List[PatientView]:
        patients: List[PatientView] = []
        seen: set[str] = set()
        for key in ("name", "family", "given"):
            try:
                bundle = self._search("Patient", {key: name, "_count": SEARCH_PAGE})
            except QueryFailure as exc:
                logger.info("Patient search by %s=%r failed: %s", key, name, exc)
                continue
            for patient in bundle.entries:
                if not isinstance(patient, PatientView) or not patient.id or patient.id in seen:
                    continue
                seen.add(patient.id)
                patients.append(patient)
        return patients

    def _patient_by_name(self, intent) -> FormattedResult:
        patients = self.find_patients_by_name(intent.name)
        if not patients:
            return _warning(
                f'No patients found with name "{intent.name}". '
                'Try searching for "all patients" to see available names.'
            )
        header = f'Found {len(patients)} patient(s) matching "{intent.name}":'
        return _success("\n\n".join([header, *(format_patient_block(p) for p in patients)]))

    def _clinical_summary(self, intent) -> FormattedResult:
        patient_id = intent.patient_id
        if not patient_id and intent.name:
            matches = self.find_patients_by_name(intent.name)
            if not matches:
                return _warning(
                    f'I recognized a request for information about "{intent.name}", '
                    "but this patient wasn't found on the current FHIR server.\n\n"
                    '- Try "Show all patients" or "Find patients with diabetes" first\n'
                    '- Then ask "Give me a clinical summary for [actual patient name]"'
                )
            patient_id = matches[0].id
        if not patient_id:
            return _warning("Please name a patient or give a patient ID for the summary.")

        detail = self._patient_by_id(PatientById(patient_id=patient_id))
        if detail.type != "success":
            return detail

        lines = ["## Clinical Summary", "", detail.content]
        try:
            observations = self._search(
                "Observation", {"patient": patient_id, "_count": CLINICAL_PAGE, "_sort": "-date"}
            )
            if not observations.is_empty:
                lines.extend(["", "### Recent Observations"])
                for observation in observations.entries:
                    if isinstance(observation, ObservationView):
                        when = f" ({_date(observation.effective)})" if observation.effective else ""
                        lines.append(f"- **{observation.code_text}**: {observation.value}{when}")
        except QueryFailure as exc:
            logger.info("Observations for %s unavailable: %s", patient_id, exc)
            lines.extend(["", "### Recent Observations", "Unable to fetch"])
        return _success("\n".join(lines))

    # -- condition handlers ------------------------------------------------

    def condition_patient_map(self, condition_text: str) -> Dict[str, List[ConditionView]]:
        """Conditions matching the text, grouped by subject patient id in first-seen order."""
        bundle = self._search("Condition", {"code:text": condition_text, "_count": CONDITION_PAGE})
        entries = bundle.entries
        if not entries:
            fallback = self._search("Condition", {"_count": CONDITION_PAGE})
            needle = condition_text.lower()
            entries = [
                entry
                for entry in fallback.entries
                if isinstance(entry, ConditionView) and needle in entry.code_text.lower()
            ]
        grouped: Dict[str, List[ConditionView]] = {}
        for entry in entries:
            if isinstance(entry, ConditionView) and entry.patient_id:
                grouped.setdefault(entry.patient_id, []).append(entry)
        return grouped

    def _patients_by_condition(self, intent) -> FormattedResult:
        grouped = self.condition_patient_map(intent.condition)
        if not grouped:
            return _warning(f'No conditions found matching "{intent.condition}".')

        blocks = [f'Found {len(grouped)} patients with conditions matching "{intent.condition}":']
        for count, (patient_id, conditions) in enumerate(grouped.items()):
            if count >= MAX_RESOLVED_PATIENTS:
                blocks.append(f"...and {len(grouped) - count} more patients.")
                break
            try:
                patient = self._read_patient(patient_id)
                lines = [f"**{patient.name}** (ID: {patient_id})"]
            except QueryFailure as exc:
                logger.info("Demographics for %s unavailable: %s", patient_id, exc)
                lines = [f"**Patient {patient_id}** (demographics not available)"]
            for condition in conditions:
                line = f"- {condition.code_text} ({condition.clinical_status})"
                if condition.onset:
                    line += f" since {_date(condition.onset)}"
                lines.append(line)
            blocks.append("\n".join(lines))
        return _success("\n\n".join(blocks))

    def _condition_patients_over_age(self, intent) -> FormattedResult:
        grouped = self.condition_patient_map(intent.condition)
        if not grouped:
            return _warning(f'No conditions found matching "{intent.condition}".')

        current_year = date.today().year
        blocks = []
        for patient_id in list(grouped)[:MAX_AGE_FILTERED_PATIENTS]:
            try:
                patient = self._read_patient(patient_id)
            except QueryFailure as exc:
                logger.info("Skipping %s: %s", patient_id, exc)
                continue
            if not patient.birth_date or not patient.birth_date[:4].isdigit():
                continue
            patient_age = current_year - int(patient.birth_date[:4])
            if patient_age > intent.min_age:
                blocks.append(
                    f"{len(blocks) + 1}. **{patient.name}** (ID: {patient.id})\n"
                    f"   Age: {patient_age}, Gender: {patient.gender or 'Unknown'}"
                )
        if not blocks:
            return _info(
                f"No patients with {intent.condition} over {intent.min_age} found in the current dataset."
            )
        header = f"Found patients with {intent.condition} over {intent.min_age}:"
        return _success("\n\n".join([header, *blocks]))

    # -- demographic searches ----------------------------------------------

    def _patients_by_gender(self, intent) -> FormattedResult:
        bundle = self._search("Patient", {"gender": intent.gender, "_count": SEARCH_PAGE})
        if bundle.is_empty:
            return _warning(f"No {intent.gender} patients found.")
        blocks = [f"Found {_found(bundle)} {intent.gender} patients:"]
        blocks.extend(
            format_patient_block(patient, gender=False) for patient in bundle.entries[:MAX_LISTED]
        )
        if len(bundle.entries) > MAX_LISTED:
            blocks.append(f"...and {len(bundle.entries) - MAX_LISTED} more patients.")
        return _success("\n\n".join(blocks))

    def _patients_by_age(self, intent) -> FormattedResult:
        if intent.age is None:
            return _warning('Please specify an age (e.g., "25 years old" or "age 30")')
        birth_year = approximate_birth_year(intent.age)
        bundle = self._search(
            "Patient",
            {
                "birthdate": f"ge{birth_year}-01-01",
                "birthdate:le": f"{birth_year}-12-31",
                "_count": SEARCH_PAGE,
            },
        )
        if bundle.is_empty:
            return _warning(f"No patients found around age {intent.age}.")
        header = f"Found {_found(bundle)} patients around age {intent.age} (born in {birth_year}):"
        blocks = [format_patient_block(patient, age=True) for patient in bundle.entries]
        return _success("\n\n".join([header, *blocks]))

    def _patients_by_birth_range(self, intent) -> FormattedResult:
        params: Dict[str, Any] = {"_count": SEARCH_PAGE}
        if intent.start:
            params["birthdate"] = f"ge{intent.start}"
        if intent.end:
            params["birthdate:le"] = intent.end
        bundle = self._search("Patient", params)
        if bundle.is_empty:
            return _warning(
                "No patients found matching that birth date criteria. "
                "This might be due to how the FHIR server handles date searches."
            )
        header = f"Found {_found(bundle)} patients matching your birth date criteria:"
        return _success("\n\n".join([header, *(format_patient_block(p) for p in bundle.entries)]))

    def search_patients_with_params(self, params: Dict[str, Any]) -> FormattedResult:
        search: Dict[str, Any] = {"_count": SEARCH_PAGE}
        for key in ("name", "family", "given", "gender"):
            if params.get(key):
                search[key] = params[key]
        birthdate = params.get("birthdate")
        if isinstance(birthdate, list):
            search["birthdate"] = [str(item) for item in birthdate]
        elif birthdate:
            birthdate = str(birthdate)
            if re.fullmatch(r"\d{4}", birthdate):
                search["birthdate"] = [f"ge{birthdate}-01-01", f"le{birthdate}-12-31"]
            else:
                search["birthdate"] = birthdate
        bundle = self._search("Patient", search)
        if bundle.is_empty:
            return _info("No patients found matching your criteria.")
        lines = [f"Found {_found(bundle)} patients:", ""]
        for index, patient in enumerate(bundle.entries, start=1):
            if isinstance(patient, PatientView):
                lines.append(f"{index}. **{patient.name}** (ID: {patient.id})")
                lines.append(
                    f"   Gender: {patient.gender or 'Unknown'}, Born: {patient.birth_date or 'Unknown'}"
                )
        return _success("\n".join(lines))

    def search_conditions_with_params(self, params: Dict[str, Any]) -> FormattedResult:
        search: Dict[str, Any] = {"_count": 50}
        code = params.get("code") or params.get("code:text") or params.get("_text")
        if code:
            search["_text"] = code
        patient_id = params.get("patient") or params.get("subject")
        if patient_id:
            search["patient"] = str(patient_id).split("/")[-1]
        bundle = self._search("Condition", search)
        if bundle.is_empty:
            return _info("No conditions found matching your criteria.")
        conditions = [entry for entry in bundle.entries if isinstance(entry, ConditionView)]
        if patient_id:
            lines = [f"Found {len(conditions)} conditions:", ""]
            for index, condition in enumerate(conditions, start=1):
                lines.append(f"{index}. **{condition.code_text}**")
                lines.append(f"   Status: {condition.clinical_status}")
                if condition.onset:
                    lines.append(f"   Onset: {condition.onset}")
            return _success("\n".join(lines))

        grouped: Dict[str, List[ConditionView]] = {}
        for condition in conditions:
            if condition.patient_id:
                grouped.setdefault(condition.patient_id, []).append(condition)
        blocks = [f"Found conditions in {len(grouped)} patients:"]
        for count, (patient_id, items) in enumerate(grouped.items()):
            if count >= MAX_LISTED:
                blocks.append(f"...and {len(grouped) - count} more patients.")
                break
            lines = [f"**Patient {patient_id}**:"]
            lines.extend(f"- {item.code_text} ({item.clinical_status})" for item in items)
            blocks.append("\n".join(lines))
        return _success("\n\n".join(blocks))

    # -- clinical resource lists -------------------------------------------

    def _scoped_params(self, patient_id: Optional[str], count: int, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"_count": count, **extra}
        if patient_id:
            params["patient"] = patient_id
        return params

    def _observations(self, intent) -> FormattedResult:
        bundle = self._search("Observation", self._scoped_params(intent.patient_id, LIST_PAGE, _sort="-date"))
        if bundle.is_empty:
            return _warning("No observations found.")
        header = f"Found {_found(bundle)} observations. Here are the most recent:"
        return _success("\n\n".join([header, *(format_view(entry) for entry in bundle.entries)]))

    def _medications(self, intent) -> FormattedResult:
        if intent.patient_id:
            return self._medications_for_patient(intent.patient_id)
        bundle = self._search("MedicationRequest", {"_count": LIST_PAGE})
        if bundle.is_empty:
            return _warning("No medications found.")
        blocks = [f"Found {_found(bundle)} medication requests:"]
        blocks.extend(
            format_medication(entry) if isinstance(entry, MedicationRequestView) else format_view(entry)
            for entry in bundle.entries
        )
        return _success("\n\n".join(blocks))

    def _medications_for_patient(self, patient_id: str) -> FormattedResult:
        try:
            bundle = self._search("MedicationRequest", {"patient": patient_id, "_count": SEARCH_PAGE})
        except QueryFailure as exc:
            return _error(f"Failed to fetch medications for patient {patient_id}: {exc}")
        if bundle.is_empty:
            return _warning(f"No medications found for patient {patient_id}.")
        blocks = [
            f"**Medications for Patient {patient_id}**",
            f"Found {_found(bundle)} medication requests:",
        ]
        blocks.extend(format_view(entry) for entry in bundle.entries)
        return _success("\n\n".join(blocks))

    def _conditions(self, intent) -> FormattedResult:
        bundle = self._search("Condition", self._scoped_params(intent.patient_id, LIST_PAGE))
        if bundle.is_empty:
            return _warning("No conditions found.")
        header = f"Found {_found(bundle)} conditions:"
        return _success("\n\n".join([header, *(format_view(entry) for entry in bundle.entries)]))

    def _care_plans(self, intent) -> FormattedResult:
        bundle = self._search("CarePlan", self._scoped_params(intent.patient_id, LIST_PAGE))
        if bundle.is_empty:
            return _warning("No care plans found.")
        header = f"Found {_found(bundle)} care plans:"
        return _success("\n\n".join([header, *(format_view(entry) for entry in bundle.entries)]))

    def search_resource(self, resource_type: str, params: Dict[str, Any]) -> FormattedResult:
        search = {"_count": LIST_PAGE, **params}
        bundle = self._search(resource_type, search)
        if bundle.is_empty:
            return _warning(f"No {resource_type} resources found.")
        header = f"Found {_found(bundle)} {resource_type} resources:"
        return _success("\n\n".join([header, *(format_view(entry) for entry in bundle.entries)]))

    def _assess_quality(self, _intent) -> FormattedResult:
        assessment = self.scorer.assess(self.transport.session.server_url)
        return _info(render_assessment_text(assessment, "two_band"))

    # -- cloud plans ---------------------------------------------------------

    def execute_operation(self, operation: FhirOperation) -> FormattedResult:
        resource = operation.resource
        params = dict(operation.parameters)
        try:
            if operation.operation == "read":
                resource_id = str(params.get("id") or params.get("_id") or "")
                if not resource_id:
                    return _warning(f"No {resource} id was given for the read operation.")
                if resource == "Patient":
                    return self.execute(PatientById(patient_id=resource_id))
                return _success(format_view(self._read(resource, resource_id)))
            if resource == "Patient":
                return self.search_patients_with_params(params)
            if resource == "Condition":
                return self.search_conditions_with_params(params)
            return self.search_resource(resource, params)
        except QueryFailure as exc:
            return _error(f"Failed to {operation.operation} {resource}: {exc}")

    def execute_plan(self, plan: ActionPlan) -> FormattedResult:
        results = [self.execute_operation(operation) for operation in plan.fhir_operations]
        sections = []
        if plan.reasoning:
            sections.append(f"🧠 **Smart Mode**: {plan.reasoning}")
        sections.extend(result.content for result in results)
        content = "\n\n---\n\n".join(sections) if sections else "The plan contained no FHIR operations."
        if any(result.type == "success" for result in results):
            result_type = "success"
        elif results and all(result.type == "error" for result in results):
            result_type = "error"
        elif results:
            result_type = results[0].type
        else:
            result_type = "info"
        return FormattedResult(type=result_type, content=content)


__all__ = [
    "QueryExecutor",
    "QueryError",
    "format_patient_block",
    "format_view",
]

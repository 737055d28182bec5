from __future__ import annotations

import re
from datetime import date
from typing import Callable, NamedTuple, Optional

from packages.core.schemas.query import (
    AboutAssistant,
    AssessQuality,
    CarePlans,
    ClinicalSummary,
    ConditionPatientsOverAge,
    Conditions,
    ListPatients,
    Medications,
    Observations,
    PatientById,
    PatientByName,
    PatientsByAgeApprox,
    PatientsByBirthRange,
    PatientsByCondition,
    PatientsByGender,
    QueryIntent,
    Unknown,
)

HELP_TEXT = """I'm not sure how to process that query. Try asking about:
- **Patients**: "Show all patients", "Find patients born in 1967", "Show male patients"
- **Conditions**: "Find patients with diabetes"
- **Medications**: "Show meds for patient e312f2f5-689d-47f9-b4dd-f6f12417322f"
- **Observations**: "Recent lab results", "Show observations for patient 123"
- **Clinical summaries**: "Give me a clinical summary for Jane Doe"
- **Data Quality**: "Check data quality"

Or try queries like:
- "Find patients that were born in the latter half of 1967"
- "Show female patients"
- "Get conditions for patient [ID]\""""

KNOWN_CONDITIONS = (
    "diabetes",
    "hypertension",
    "asthma",
    "copd",
    "obesity",
    "depression",
    "cancer",
    "arthritis",
    "pneumonia",
    "sinusitis",
)

DEFAULT_MIN_AGE = 65

UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)
ID_AFTER_KEYWORD_RE = re.compile(r"\b(?:patient|for|id)\s+(?=([a-z0-9\-]+))", re.IGNORECASE)
BARE_ID_RE = re.compile(r"\b([a-z0-9]{8,})\b", re.IGNORECASE)
SHOW_PATIENT_NAME_RE = re.compile(r"(?:show|get)\s+patient\s+['\"]?([a-zA-Z\s]+)['\"]?", re.IGNORECASE)
TWO_WORD_NAME_RE = re.compile(r"\b([A-Z][a-z]+\s+[A-Z][a-z]+)\b")
SUMMARY_NAME_RE = re.compile(r"\b(?:of|for|about|on)\s+([a-zA-Z][a-zA-Z\s'\-]*?)\s*\??\s*$", re.IGNORECASE)
CONDITION_PHRASE_RE = re.compile(
    r"\bpatients?\s+(?:with|having|diagnosed with|who have)\s+([a-z0-9][a-z0-9 '\-]*?)\s*(?:\?|$|\bover\b|\babove\b|\bolder\b)",
    re.IGNORECASE,
)
YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
AGE_RE = re.compile(r"(\d+)\s*(?:years?\s*old|age)|\bage\s*(\d+)", re.IGNORECASE)
NUMBER_RE = re.compile(r"(\d+)")

_SUMMARY_TRIGGERS = (
    "clinical summary",
    "summary",
    "more about",
    "tell me about",
    "information about",
    "details about",
)
_NAME_STOPWORDS = {"me", "it", "this", "that", "them", "him", "her", "patient", "patients"}


def _contains_any(text: str, words: tuple[str, ...]) -> bool:
    return any(word in text for word in words)


def _has_word(text: str, pattern: str) -> bool:
    return re.search(pattern, text) is not None


def extract_patient_id(text: str) -> Optional[str]:
    """UUID first, then '(patient|for|id) <token>', then any alphanumeric token of 8+ chars."""
    uuid_match = UUID_RE.search(text)
    if uuid_match:
        return uuid_match.group(0)
    for match in ID_AFTER_KEYWORD_RE.finditer(text):
        token = match.group(1)
        if any(char.isdigit() for char in token):
            return token
    for match in BARE_ID_RE.finditer(text):
        token = match.group(1)
        if any(char.isdigit() for char in token) and not YEAR_RE.fullmatch(token):
            return token
    return None


def extract_name(text: str) -> Optional[str]:
    match = TWO_WORD_NAME_RE.search(text)
    if match:
        return match.group(1)
    match = SHOW_PATIENT_NAME_RE.search(text)
    if match:
        name = match.group(1).strip()
        if name and name.lower() not in _NAME_STOPWORDS:
            return name
    return None


def extract_condition(text: str) -> Optional[str]:
    lower = text.lower()
    for keyword in KNOWN_CONDITIONS:
        if keyword in lower:
            return keyword
    match = CONDITION_PHRASE_RE.search(lower)
    if match:
        condition = match.group(1).strip()
        return condition or None
    return None


def extract_birth_range(text: str) -> tuple[Optional[str], Optional[str]]:
    match = YEAR_RE.search(text)
    if not match:
        return None, None
    year = match.group(0)
    lower = text.lower()
    if "latter half" in lower or "second half" in lower:
        return f"{year}-07-01", f"{year}-12-31"
    if "first half" in lower or "early" in lower:
        return f"{year}-01-01", f"{year}-06-30"
    return f"{year}-01-01", f"{year}-12-31"


def extract_gender(text: str) -> Optional[str]:
    lower = text.lower()
    if "female" in lower:
        return "female"
    if "male" in lower:
        return "male"
    return None


def extract_age(text: str) -> Optional[int]:
    match = AGE_RE.search(text)
    if not match:
        return None
    return int(match.group(1) or match.group(2))


def approximate_birth_year(age: int, today: Optional[date] = None) -> int:
    # Calendar-year approximation; month and day are ignored.
    return (today or date.today()).year - age


def _summary_intent(text: str) -> Optional[QueryIntent]:
    uuid_match = UUID_RE.search(text)
    if uuid_match:
        return ClinicalSummary(patient_id=uuid_match.group(0))
    match = SUMMARY_NAME_RE.search(text.strip())
    if match:
        name = match.group(1).strip()
        if name and name.lower() not in _NAME_STOPWORDS:
            return ClinicalSummary(name=name)
    patient_id = extract_patient_id(text)
    if patient_id:
        return ClinicalSummary(patient_id=patient_id)
    return None


def _show_patient_intent(text: str) -> Optional[QueryIntent]:
    patient_id = extract_patient_id(text)
    if patient_id:
        return PatientById(patient_id=patient_id)
    match = SHOW_PATIENT_NAME_RE.search(text)
    if match:
        name = match.group(1).strip()
        if name and name.lower() not in _NAME_STOPWORDS:
            return PatientByName(name=name)
    return None


def _over_age_intent(text: str) -> QueryIntent:
    number = NUMBER_RE.search(text)
    min_age = int(number.group(1)) if number else DEFAULT_MIN_AGE
    return ConditionPatientsOverAge(condition="diabetes", min_age=min_age)


def _condition_intent(text: str) -> Optional[QueryIntent]:
    condition = extract_condition(text)
    return PatientsByCondition(condition=condition) if condition else None


def _name_intent(text: str) -> Optional[QueryIntent]:
    match = TWO_WORD_NAME_RE.search(text)
    return PatientByName(name=match.group(1)) if match else None


def _birth_range_intent(text: str) -> QueryIntent:
    start, end = extract_birth_range(text)
    return PatientsByBirthRange(start=start, end=end)


class Rule(NamedTuple):
    name: str
    matches: Callable[[str], bool]
    build: Callable[[str], Optional[QueryIntent]]


# Order resolves overlaps: the first rule whose predicate holds and whose builder
# returns an intent wins.
RULES: tuple[Rule, ...] = (
    Rule(
        "condition_over_age",
        lambda low: _contains_any(low, ("diabetic", "diabetes"))
        and _contains_any(low, ("over", "above", "older")),
        _over_age_intent,
    ),
    Rule("about_assistant", lambda low: _has_word(low, r"\b(?:llm|model|ai)\b"), lambda _t: AboutAssistant()),
    Rule(
        "list_patients",
        lambda low: "all patients" in low or low.strip() == "show patients",
        lambda _t: ListPatients(),
    ),
    Rule(
        "patients_by_condition",
        lambda low: "patient" in low and extract_condition(low) is not None,
        _condition_intent,
    ),
    Rule("clinical_summary", lambda low: _contains_any(low, _SUMMARY_TRIGGERS), _summary_intent),
    Rule("show_patient", lambda low: _contains_any(low, ("get patient", "show patient")), _show_patient_intent),
    Rule(
        "medications_for_patient",
        lambda low: (_has_word(low, r"\bmed") or _contains_any(low, ("prescription", "drug")))
        and _contains_any(low, ("for", "patient")),
        lambda text: Medications(patient_id=extract_patient_id(text)),
    ),
    Rule(
        "observations",
        lambda low: "observation" in low or _has_word(low, r"\b(?:labs?|vitals?)\b"),
        lambda text: Observations(patient_id=extract_patient_id(text)),
    ),
    Rule(
        "medications",
        lambda low: _contains_any(low, ("medication", "prescription")),
        lambda text: Medications(patient_id=extract_patient_id(text)),
    ),
    Rule(
        "conditions",
        lambda low: _contains_any(low, ("condition", "diagnos")),
        lambda text: Conditions(patient_id=extract_patient_id(text)),
    ),
    Rule(
        "assess_quality",
        lambda low: _contains_any(low, ("data quality", "check quality", "assess quality")),
        lambda _t: AssessQuality(),
    ),
    Rule(
        "care_plans",
        lambda low: "care plan" in low,
        lambda text: CarePlans(patient_id=extract_patient_id(text)),
    ),
    Rule(
        "birth_range",
        lambda low: _contains_any(low, ("born", "birth")),
        _birth_range_intent,
    ),
    Rule(
        "gender",
        lambda low: extract_gender(low) is not None and "patient" in low,
        lambda text: PatientsByGender(gender=extract_gender(text) or ""),
    ),
    Rule(
        "age",
        lambda low: _has_word(low, r"\bage\b") or "years old" in low,
        lambda text: PatientsByAgeApprox(age=extract_age(text)),
    ),
    Rule("patient_name", lambda _low: True, _name_intent),
)


def classify(text: str) -> QueryIntent:
    """Map free text to a QueryIntent; unmatched text yields Unknown with help text."""
    lower = text.lower().strip()
    if lower:
        for rule in RULES:
            if not rule.matches(lower):
                continue
            intent = rule.build(text)
            if intent is not None:
                return intent
    return Unknown(help_text=HELP_TEXT)


def matched_rule(text: str) -> Optional[str]:
    lower = text.lower().strip()
    for rule in RULES:
        if rule.matches(lower) and rule.build(text) is not None:
            return rule.name
    return None


__all__ = [
    "HELP_TEXT",
    "RULES",
    "classify",
    "matched_rule",
    "extract_patient_id",
    "extract_name",
    "extract_condition",
    "extract_birth_range",
    "extract_gender",
    "extract_age",
    "approximate_birth_year",
]

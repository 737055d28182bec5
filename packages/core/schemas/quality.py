from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from packages.core.schemas.fhir import Issue


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResourceAssessment(BaseModel):
    accessible: bool = False
    total: int = 0
    returned: int = 0
    score: float = 0.0
    issues: List[Issue] = Field(default_factory=list)
    error: Optional[str] = None


class QualityAssessment(BaseModel):
    server_url: str
    timestamp: datetime = Field(default_factory=_utcnow)
    per_resource: Dict[str, ResourceAssessment] = Field(default_factory=dict)
    overall_score: float = 0.0

    def accessible_resources(self) -> List[str]:
        return [name for name, item in self.per_resource.items() if item.accessible]


__all__ = ["ResourceAssessment", "QualityAssessment"]

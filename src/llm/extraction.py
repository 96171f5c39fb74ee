"""Strict parsing of the model's structured lead extraction.

The model must answer with a JSON object holding exactly the keys name,
budget, location, type and timeline, each a string or null. Anything else
(missing keys, extra keys, non-string values, unparsable text) is a hard
failure for that message's lead synthesis.
"""
from __future__ import annotations

import json
from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictStr
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import LeadExtractionError
from domain.leads import PartialLead


class StructuredFields(BaseModel):
    """Wire shape of the extraction result. Every key is required; null is allowed."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[StrictStr]
    budget: Optional[StrictStr]
    location: Optional[StrictStr]
    type: Optional[StrictStr]
    timeline: Optional[StrictStr]

    def to_partial_lead(self) -> PartialLead:
        return PartialLead(
            name=self.name,
            budget=self.budget,
            location=self.location,
            type=self.type,
            timeline=self.timeline,
        )


def _json_object_text(raw: str) -> str:
    # Models sometimes wrap the object in prose or a code fence.
    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start < 0 or end <= start:
        raise LeadExtractionError("Extraction result contains no JSON object")
    return raw[start:end]


def parse_structured_fields(raw: Optional[str]) -> PartialLead:
    """
    Parse and validate an extraction result.

    Raises:
        LeadExtractionError: The payload is empty, not JSON, or violates the
            exact-keys contract.
    """
    if not raw or not raw.strip():
        raise LeadExtractionError("Extraction result is empty")

    try:
        data = json.loads(_json_object_text(raw))
    except json.JSONDecodeError as e:
        raise LeadExtractionError(f"Extraction result is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LeadExtractionError("Extraction result is not a JSON object")

    try:
        fields = StructuredFields.model_validate(data)
    except PydanticValidationError as e:
        raise LeadExtractionError(f"Extraction result violates the field contract: {e}") from e

    return fields.to_partial_lead()


__all__ = ["StructuredFields", "parse_structured_fields"]

"""Pydantic models for clinical documents and provider style profiles."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


NARRATIVE_SECTIONS: tuple[str, ...] = ("subjective", "objective", "assessment", "plan")
SAMPLED_SECTIONS: tuple[str, ...] = ("subjective", "assessment", "plan")


class ClinicalDocument(BaseModel):
    """A structured SOAP note with codes and patient instructions."""

    subjective: str = ""
    objective: str = ""
    assessment: str = ""
    plan: str = ""
    diagnosis_codes: list[str] = Field(default_factory=list, description="ICD-10 suggestions, in order")
    patient_instructions: str = ""

    @classmethod
    def from_synthesis_response(cls, payload: dict) -> "ClinicalDocument":
        """Build a document from the synthesis wire response.

        Every field is optional; missing or null values become empty.
        """
        codes = payload.get("icd10Codes")
        return cls(
            subjective=_text(payload.get("subjective")),
            objective=_text(payload.get("objective")),
            assessment=_text(payload.get("assessment")),
            plan=_text(payload.get("plan")),
            diagnosis_codes=[str(c) for c in codes] if isinstance(codes, list) else [],
            patient_instructions=_text(payload.get("patientInstructions")),
        )

    def narrative_sections(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in NARRATIVE_SECTIONS}

    def differs_from(self, other: "ClinicalDocument") -> bool:
        """True when any of the four narrative sections differ textually."""
        return self.narrative_sections() != other.narrative_sections()

    def with_section(self, name: str, text: str) -> "ClinicalDocument":
        if name not in NARRATIVE_SECTIONS and name != "patient_instructions":
            raise ValueError(f"Unknown document section: {name!r}")
        return self.model_copy(update={name: text})

    def as_text(self) -> str:
        """Plain-text export of the narrative sections."""
        return "\n\n".join(f"{name.upper()}:\n{text}" for name, text in self.narrative_sections().items())


def _text(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class SectionLengths(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subjective: int = 0
    objective: int = 0
    assessment: int = 0
    plan: int = 0

    @classmethod
    def of(cls, document: ClinicalDocument) -> "SectionLengths":
        return cls(**{name: len(text) for name, text in document.narrative_sections().items()})


class StylePattern(BaseModel):
    """One observed correction: how long each section was before and after."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    original_lengths: SectionLengths
    edited_lengths: SectionLengths
    edited_samples: dict[str, str] = Field(default_factory=dict)


class StyleProfile(BaseModel):
    """Accumulated edit history for one provider, most recent last."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    owner_id: str
    edit_count: int = 0
    patterns: list[StylePattern] = Field(default_factory=list)

    def record(self, pattern: StylePattern, limit: int = 10) -> "StyleProfile":
        """Return a new profile with ``pattern`` appended and history capped."""
        patterns = [*self.patterns, pattern][-limit:]
        return StyleProfile(owner_id=self.owner_id, edit_count=self.edit_count + 1, patterns=patterns)

    def to_preference_value(self) -> dict:
        """Wire form stored under the provider's preference key."""
        return self.model_dump(mode="json", by_alias=True, exclude={"owner_id"})

    @classmethod
    def from_preference_value(cls, owner_id: str, value: object) -> "StyleProfile":
        """Parse a stored preference value, tolerating partial records."""
        if not isinstance(value, dict):
            return cls(owner_id=owner_id)
        patterns = value.get("patterns")
        edit_count = value.get("editCount", 0)
        return cls.model_validate(
            {
                "ownerId": owner_id,
                "editCount": edit_count if isinstance(edit_count, int) else 0,
                "patterns": patterns if isinstance(patterns, list) else [],
            }
        )


class SynthesisRequest(BaseModel):
    """Request body for the document-synthesis capability."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    transcript: str
    patient_label: str = "Patient"
    clinician_label: str = "Doctor"
    encounter_ref: dict[str, str | None] = Field(default_factory=dict)
    style_preferences: str | None = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

"""Unit tests for clinical documents, style profiles and synthesis requests."""

from __future__ import annotations

import pytest

from ambient_scribe.synthesis.models import (
    ClinicalDocument,
    SectionLengths,
    StylePattern,
    StyleProfile,
    SynthesisRequest,
)

pytestmark = pytest.mark.unit


def _pattern(plan_length: int = 10) -> StylePattern:
    return StylePattern(
        original_lengths=SectionLengths(plan=5),
        edited_lengths=SectionLengths(plan=plan_length),
        edited_samples={"subjective": "", "assessment": "", "plan": "x" * plan_length},
    )


class TestClinicalDocument:

    def test_from_full_response(self) -> None:
        doc = ClinicalDocument.from_synthesis_response(
            {
                "subjective": "S",
                "objective": "O",
                "assessment": "A",
                "plan": "P",
                "icd10Codes": ["R51.9", "R11.0"],
                "patientInstructions": "Rest.",
            }
        )
        assert doc.narrative_sections() == {"subjective": "S", "objective": "O", "assessment": "A", "plan": "P"}
        assert doc.diagnosis_codes == ["R51.9", "R11.0"]
        assert doc.patient_instructions == "Rest."

    def test_missing_and_null_fields_default_empty(self) -> None:
        doc = ClinicalDocument.from_synthesis_response({"plan": None, "icd10Codes": "R51.9"})
        assert doc == ClinicalDocument()

    def test_differs_from_ignores_codes(self, sample_document: ClinicalDocument) -> None:
        recoded = sample_document.model_copy(update={"diagnosis_codes": ["Z00.00"]})
        assert not recoded.differs_from(sample_document)
        assert sample_document.with_section("plan", "Rest.").differs_from(sample_document)

    def test_with_section_rejects_unknown(self, sample_document: ClinicalDocument) -> None:
        with pytest.raises(ValueError):
            sample_document.with_section("history", "x")

    def test_with_section_is_a_copy(self, sample_document: ClinicalDocument) -> None:
        edited = sample_document.with_section("assessment", "Migraine without aura.")
        assert edited.assessment == "Migraine without aura."
        assert sample_document.assessment == "Tension-type headache."

    def test_as_text_export(self) -> None:
        doc = ClinicalDocument(subjective="s", objective="o", assessment="a", plan="p")
        assert doc.as_text() == "SUBJECTIVE:\ns\n\nOBJECTIVE:\no\n\nASSESSMENT:\na\n\nPLAN:\np"

    def test_section_lengths(self, sample_document: ClinicalDocument) -> None:
        lengths = SectionLengths.of(sample_document)
        assert lengths.plan == len(sample_document.plan)
        assert lengths.model_dump(by_alias=True).keys() == {"subjective", "objective", "assessment", "plan"}


class TestStyleProfile:

    def test_record_appends_and_counts(self) -> None:
        profile = StyleProfile(owner_id="doc-1")
        updated = profile.record(_pattern())
        assert updated.edit_count == 1
        assert len(updated.patterns) == 1
        assert profile.edit_count == 0

    def test_history_capped_to_most_recent(self) -> None:
        profile = StyleProfile(owner_id="doc-1")
        for length in range(1, 13):
            profile = profile.record(_pattern(length), limit=10)
        assert profile.edit_count == 12
        assert len(profile.patterns) == 10
        assert profile.patterns[0].edited_lengths.plan == 3
        assert profile.patterns[-1].edited_lengths.plan == 12

    def test_preference_value_is_camel_case(self) -> None:
        value = StyleProfile(owner_id="doc-1").record(_pattern()).to_preference_value()
        assert value["editCount"] == 1
        assert "ownerId" not in value
        pattern = value["patterns"][0]
        assert set(pattern) == {"timestamp", "originalLengths", "editedLengths", "editedSamples"}
        assert isinstance(pattern["timestamp"], str)

    def test_preference_value_round_trip(self) -> None:
        profile = StyleProfile(owner_id="doc-1").record(_pattern(42))
        restored = StyleProfile.from_preference_value("doc-1", profile.to_preference_value())
        assert restored == profile

    @pytest.mark.parametrize("value", [None, "garbage", {"editCount": "many", "patterns": "none"}])
    def test_partial_preference_values_tolerated(self, value) -> None:
        profile = StyleProfile.from_preference_value("doc-1", value)
        assert profile.edit_count == 0
        assert profile.patterns == []


class TestSynthesisRequest:

    def test_payload_uses_wire_names(self) -> None:
        request = SynthesisRequest(
            transcript="[Doctor]: Hello",
            patient_label="Jane",
            clinician_label="Dr. Smith",
            encounter_ref={"appointmentId": "a-1", "patientId": None, "doctorId": "d-1"},
        )
        payload = request.to_payload()
        assert payload["transcript"] == "[Doctor]: Hello"
        assert payload["patientLabel"] == "Jane"
        assert payload["clinicianLabel"] == "Dr. Smith"
        assert payload["encounterRef"]["appointmentId"] == "a-1"
        assert "stylePreferences" not in payload

    def test_style_preferences_included_when_present(self) -> None:
        payload = SynthesisRequest(transcript="t", style_preferences='{"editCount":1}').to_payload()
        assert payload["stylePreferences"] == '{"editCount":1}'

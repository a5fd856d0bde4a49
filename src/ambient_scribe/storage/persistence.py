"""Session saves and edit-driven style learning.

Two save paths exist. The autosave runs once, when the final synthesis of a
session completes, and stores the synthesized note. The manual save stores
the user's working copy and, when the user changed any narrative section,
records what they changed in their style profile so later syntheses can
imitate it.

Store failures never interrupt the session; they are logged and the save
reports ``False``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..config import ScribeSettings, get_settings
from ..exceptions import PersistenceError
from ..synthesis.models import (
    SAMPLED_SECTIONS,
    ClinicalDocument,
    SectionLengths,
    StylePattern,
    StyleProfile,
)
from .store import RecordStore

if TYPE_CHECKING:
    from ..session.models import ScribeSession


logger = logging.getLogger(__name__)

SESSIONS_TABLE = "scribe_sessions"
PREFERENCES_TABLE = "doctor_preferences"
STYLE_PREFERENCE_KEY = "soap_style"


def detect_style_edit(
    original: ClinicalDocument,
    edited: ClinicalDocument,
    sample_chars: int = 500,
) -> StylePattern | None:
    """Describe how ``edited`` differs from ``original``, or None if unchanged."""
    if not edited.differs_from(original):
        return None
    return StylePattern(
        original_lengths=SectionLengths.of(original),
        edited_lengths=SectionLengths.of(edited),
        edited_samples={name: getattr(edited, name)[:sample_chars] for name in SAMPLED_SECTIONS},
    )


class SessionPersistence:
    """Write session artifacts and maintain provider style profiles."""

    def __init__(self, store: RecordStore, settings: ScribeSettings | None = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    async def autosave(self, session: ScribeSession) -> bool:
        """Persist the synthesized note; runs at most once per session."""
        if session.autosaved:
            return False
        session.autosaved = True
        saved = await self._upsert_session(session, session.synthesized)
        if saved:
            logger.info("Autosaved session %s", session.session_id)
        return saved

    async def manual_save(self, session: ScribeSession) -> bool:
        """Persist the working copy, leave edit mode, and learn from edits."""
        edited = session.working
        original = session.synthesized
        if edited is None:
            return False

        saved = await self._upsert_session(session, edited)
        if not saved:
            return False
        session.end_edit()

        owner_id = session.encounter.doctor_id
        if owner_id and original is not None:
            pattern = detect_style_edit(original, edited, self._settings.style_sample_chars)
            if pattern is not None:
                await self._record_pattern(owner_id, pattern)
        return True

    async def load_profile(self, owner_id: str | None) -> StyleProfile | None:
        """Return the stored style profile for ``owner_id``, if any."""
        if not owner_id:
            return None
        try:
            return await self._fetch_profile(owner_id)
        except PersistenceError as exc:
            logger.warning("Could not load style profile: %s", exc.message)
            return None

    async def _fetch_profile(self, owner_id: str) -> StyleProfile | None:
        row = await asyncio.to_thread(
            self._store.fetch_one,
            PREFERENCES_TABLE,
            {"doctor_id": owner_id, "preference_key": STYLE_PREFERENCE_KEY},
        )
        if row is None:
            return None
        try:
            return StyleProfile.from_preference_value(owner_id, row.get("preference_value"))
        except ValidationError:
            logger.warning("Ignoring malformed style profile for %s", owner_id)
            return None

    async def _record_pattern(self, owner_id: str, pattern: StylePattern) -> None:
        try:
            profile = await self._fetch_profile(owner_id) or StyleProfile(owner_id=owner_id)
        except PersistenceError as exc:
            logger.warning("Style profile not updated: %s", exc.message)
            return
        updated = profile.record(pattern, limit=self._settings.style_history_limit)
        record = {
            "doctor_id": owner_id,
            "preference_key": STYLE_PREFERENCE_KEY,
            "preference_value": updated.to_preference_value(),
            "updated_at": pattern.timestamp.isoformat(),
        }
        try:
            await asyncio.to_thread(
                self._store.upsert, PREFERENCES_TABLE, record, ("doctor_id", "preference_key")
            )
        except PersistenceError as exc:
            logger.warning("Could not update style profile: %s", exc.message)
            return
        logger.info("Style profile for %s now has %d edits", owner_id, updated.edit_count)

    async def _upsert_session(self, session: ScribeSession, document: ClinicalDocument | None) -> bool:
        session.touch()
        record = session.to_record(document)
        try:
            await asyncio.to_thread(self._store.upsert, SESSIONS_TABLE, record, ("session_id",))
        except PersistenceError as exc:
            logger.warning("Session %s not saved: %s", session.session_id, exc.message)
            return False
        return True

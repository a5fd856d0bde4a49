from .models import CaptureFailure, EncounterRef, ScribeSession, SessionStatus
from .timers import Cadence
from .controller import ScribeController

__all__ = [
    "CaptureFailure",
    "EncounterRef",
    "ScribeSession",
    "SessionStatus",
    "Cadence",
    "ScribeController",
]

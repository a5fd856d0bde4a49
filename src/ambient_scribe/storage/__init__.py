from .store import HTTPRecordStore, InMemoryRecordStore, RecordStore, create_record_store
from .persistence import SessionPersistence, detect_style_edit

__all__ = [
    "HTTPRecordStore",
    "InMemoryRecordStore",
    "RecordStore",
    "create_record_store",
    "SessionPersistence",
    "detect_style_edit",
]

from .models import ClinicalDocument, StylePattern, StyleProfile, SynthesisRequest
from .client import DocumentSynthesisClient, parse_document_payload
from .synthesizer import ProgressiveDocumentSynthesizer

__all__ = [
    "ClinicalDocument",
    "StylePattern",
    "StyleProfile",
    "SynthesisRequest",
    "DocumentSynthesisClient",
    "parse_document_payload",
    "ProgressiveDocumentSynthesizer",
]

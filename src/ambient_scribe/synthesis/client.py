"""HTTP client for the remote document-synthesis capability."""

from __future__ import annotations

import json
import re

import requests

from ..config import ScribeSettings, get_settings
from ..exceptions import SynthesisError
from .models import ClinicalDocument, SynthesisRequest


_FENCE_RE = re.compile(r"```(?:json)?\s*\n?|```\s*$")
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_document_payload(raw: str) -> dict:
    """Extract the JSON object from a synthesis response body.

    Model-backed services sometimes wrap the object in markdown fences or a
    sentence of prose; both are tolerated.

    Raises:
        SynthesisError: if no JSON object can be recovered.
    """
    cleaned = _FENCE_RE.sub("", raw or "").strip()
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        match = _OBJECT_RE.search(cleaned)
        if match is None:
            raise SynthesisError("response is not JSON")
        try:
            parsed = json.loads(match.group(0))
        except ValueError as exc:
            raise SynthesisError("response is not JSON") from exc
    if not isinstance(parsed, dict):
        raise SynthesisError("response is not a JSON object")
    return parsed


class DocumentSynthesisClient:
    """POST speaker-labeled transcripts and receive a structured SOAP note."""

    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        session: requests.Session | None = None,
        settings: ScribeSettings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.url = url or self._settings.synthesis_url
        self._token = token if token is not None else self._settings.synthesis_token
        self._session = session or requests.Session()

    def generate(self, request: SynthesisRequest) -> ClinicalDocument:
        """Request one document synthesis.

        Raises:
            SynthesisError: on transport errors, non-2xx responses, or an
                unparseable body. No partial document is ever returned.
        """
        try:
            response = self._session.post(
                self.url,
                json=request.to_payload(),
                headers=self._headers(),
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise SynthesisError(str(exc) or exc.__class__.__name__) from exc

        if not response.ok:
            raise SynthesisError(f"HTTP {response.status_code}", status_code=response.status_code)

        return ClinicalDocument.from_synthesis_response(parse_document_payload(response.text))

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

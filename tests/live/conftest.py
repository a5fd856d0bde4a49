"""Skip guards for live tests.

Every live test that requires external credentials is guarded by a pytest.mark.skipif
that checks for the required environment variable. Tests silently skip when
credentials are absent; they never fail due to missing config.

Required environment variables:
  DEEPGRAM_API_KEY         Real Deepgram API key
  SCRIBE_SYNTHESIS_URL     Reachable document-synthesis endpoint
  SCRIBE_SYNTHESIS_TOKEN   Bearer token for that endpoint (optional)

Set them in your shell before running:
  export DEEPGRAM_API_KEY=your_key_here
  pytest tests/live -v -m live
"""

from __future__ import annotations

import os
import pytest


def _skip_unless(env_var: str, reason: str | None = None):
    """Return a pytest.mark.skipif that skips when env_var is not set."""
    msg = reason or f"Set {env_var} to run this test"
    return pytest.mark.skipif(not os.environ.get(env_var), reason=msg)


# Convenience marks, import these in live test files
skip_no_deepgram  = _skip_unless("DEEPGRAM_API_KEY",     "Set DEEPGRAM_API_KEY to run live Deepgram tests")
skip_no_synthesis = _skip_unless("SCRIBE_SYNTHESIS_URL", "Set SCRIBE_SYNTHESIS_URL to run live synthesis tests")


@pytest.fixture(scope="session")
def deepgram_api_key() -> str:
    key = os.environ.get("DEEPGRAM_API_KEY", "")
    if not key:
        pytest.skip("DEEPGRAM_API_KEY not set")
    return key

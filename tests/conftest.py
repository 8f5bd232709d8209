import json
import os
import tempfile

import pytest

# Keep logs and the settings database out of the project tree during tests.
os.environ.setdefault("WEAVER_STATE_DIR", tempfile.mkdtemp(prefix="link_weaver_test_"))

from link_weaver.corpus import InMemoryCorpus, StoredDocument


class FakeResponse:
    """Stand-in for ``requests.Response`` with just what the clients read."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


def gemini_body(generated):
    text = generated if isinstance(generated, str) else json.dumps(generated)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def completions_body(generated):
    text = generated if isinstance(generated, str) else json.dumps(generated)
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture
def corpus():
    return InMemoryCorpus(
        [
            StoredDocument(id=1, title="Guide to X", url="/x"),
            StoredDocument(id=2, title="Deploying Y", url="/y"),
            StoredDocument(id=3, title="Draft about Z", url="/z", status="draft"),
            StoredDocument(id=4, title="Current post", url="/current"),
        ]
    )

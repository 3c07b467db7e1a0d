"""Shared fixtures: isolated preference store, clean proxy/credential env, fake HTTP replies."""

from __future__ import annotations

import base64
import json

import pytest

ENV_VARS = (
    "HTTP_PROXY",
    "http_proxy",
    "HTTPS_PROXY",
    "https_proxy",
    "NO_PROXY",
    "no_proxy",
    "SYSTEM_PROXY",
    "GEMINI_API_KEY",
    "GOOGLE_APPLICATION_CREDENTIALS",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point the preference store at a temp dir and run from an empty cwd."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("IMAGEGEN_CONFIG_DIR", str(tmp_path / "config"))
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture()
def image_bytes() -> bytes:
    return bytes(range(256)) * 3


@pytest.fixture()
def image_b64(image_bytes) -> str:
    return base64.b64encode(image_bytes).decode("ascii")


@pytest.fixture()
def output_dirs(tmp_path):
    return str(tmp_path / "images"), str(tmp_path / "output")


class FakeResponse:
    """Minimal stand-in for `requests.Response`."""

    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


@pytest.fixture()
def fake_response():
    return FakeResponse

from __future__ import annotations

import os

import imagegen.image.auth as auth
from imagegen.config import preferences
from imagegen.config.provider_config import config_directory


def test_service_account_env_wins(monkeypatch):
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", "/keys/sa.json")
    assert auth.get_service_account_key_path() == "/keys/sa.json"


def test_service_account_config_dir_then_local(isolated_environment):
    assert auth.get_service_account_key_path() is None

    local = isolated_environment / ".service-account.json"
    local.write_text("{}")
    assert auth.get_service_account_key_path() == str(local)

    os.makedirs(config_directory(), exist_ok=True)
    stored = os.path.join(config_directory(), "service-account.json")
    with open(stored, "w") as f:
        f.write("{}")
    assert auth.get_service_account_key_path() == stored


def test_gemini_key_from_env_then_preferences(monkeypatch):
    assert auth.get_gemini_api_key() is None

    preferences.save_config({"geminiApiKey": "stored-key"})
    assert auth.get_gemini_api_key() == "stored-key"

    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    assert auth.get_gemini_api_key() == "env-key"


def test_access_token_refreshes_through_proxied_session(monkeypatch):
    seen = {}

    class FakeCredentials:
        token = None

        def refresh(self, request):
            seen["proxies"] = dict(request.session.proxies)
            self.token = "minted"

    def fake_from_file(path, scopes=None):
        seen["path"] = path
        seen["scopes"] = scopes
        return FakeCredentials()

    monkeypatch.setattr(auth.service_account.Credentials, "from_service_account_file", fake_from_file)

    token = auth.get_access_token("sa.json", proxies={"https": "http://p:1", "http": "http://p:1"})

    assert token == "minted"
    assert seen["path"] == "sa.json"
    assert seen["scopes"] == ["https://www.googleapis.com/auth/cloud-platform"]
    assert seen["proxies"]["https"] == "http://p:1"

from __future__ import annotations

import json

import pytest
import requests

import imagegen.api.cli as cli
from imagegen.config import preferences
from imagegen.core.types import GenerationResult


@pytest.fixture()
def captured_generate(monkeypatch, tmp_path):
    """Replace the vendor call with a successful canned result."""
    captured = {}

    def fake_generate(api, options, transport=None):
        captured.update(api=api, options=options, transport=transport)
        return GenerationResult(success=True, images=(str(tmp_path / "img.png"),), output_dir=options.output_dir)

    monkeypatch.setattr(cli, "generate", fake_generate)
    monkeypatch.setattr(cli, "open_directory", lambda path: captured.setdefault("opened", path))
    return captured


def test_config_file_values_lose_to_explicit_arguments(tmp_path):
    config_file = tmp_path / "options.json"
    config_file.write_text(json.dumps({"aspectRatio": "16:9", "count": 3, "negative_prompt": "blur", "ignored": 1}))

    args = cli.build_parser().parse_args(["a cat", "-f", str(config_file), "-c", "2"])
    options = cli.merge_options(args, cli.load_config_file(str(config_file)), {"lastOutputDir": "/prev/images"})

    assert options["prompt"] == "a cat"
    assert options["count"] == 2
    assert options["aspect_ratio"] == "16:9"
    assert options["negative_prompt"] == "blur"
    assert options["output_dir"] == "/prev/images"
    assert "ignored" not in options


def test_no_watermark_flag():
    args = cli.build_parser().parse_args(["x", "--no-watermark"])
    assert cli.merge_options(args)["watermark"] is False
    assert cli.merge_options(cli.build_parser().parse_args(["x"]))["watermark"] is True


def test_missing_config_file_exits_with_error(capsys):
    assert cli.main(["a cat", "-f", "does-not-exist.json"]) == 1
    assert "Error loading config file" in capsys.readouterr().out


def test_gemini_without_key_fails_validation(capsys):
    assert cli.main(["a cat", "-t", "gemini"]) == 1
    assert "requires an API key" in capsys.readouterr().out


def test_gemini_success_stores_directories(captured_generate, tmp_path):
    out_dir = str(tmp_path / "out")
    json_dir = str(tmp_path / "json")

    code = cli.main(["a cat", "-t", "gemini", "-g", "key", "-o", out_dir, "-j", json_dir])

    assert code == 0
    assert captured_generate["api"] == "gemini"
    assert captured_generate["options"].gemini_key == "key"
    assert captured_generate["opened"] == out_dir
    stored = preferences.get_config()
    assert stored["lastOutputDir"] == out_dir
    assert stored["lastJsonDir"] == json_dir


def test_no_open_flag_skips_directory(captured_generate):
    assert cli.main(["a cat", "-t", "gemini", "-g", "key", "--no-open"]) == 0
    assert "opened" not in captured_generate


def test_imagen_reads_project_from_key_file(captured_generate, tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "GOOGLE_CLOUD_PROJECT", "")
    monkeypatch.setitem(cli.BUILTIN_DEFAULTS, "project_id", "")
    key_file = tmp_path / "sa.json"
    key_file.write_text(json.dumps({"project_id": "from-key"}))

    code = cli.main(["a fox", "-t", "imagen", "-k", str(key_file), "-c", "2", "--no-open"])

    assert code == 0
    options = captured_generate["options"]
    assert options.project_id == "from-key"
    assert options.key_file == str(key_file)
    assert options.count == 2


def test_imagen_missing_key_file(capsys, tmp_path):
    assert cli.main(["a fox", "-t", "imagen", "-k", str(tmp_path / "nope.json")]) == 1
    assert "Key file not found" in capsys.readouterr().out


def test_imagen_without_any_key_file(capsys):
    assert cli.main(["a fox", "-t", "imagen"]) == 1
    assert "requires a service account key file" in capsys.readouterr().out


def test_unknown_api_from_config_file(tmp_path, capsys):
    config_file = tmp_path / "options.json"
    config_file.write_text(json.dumps({"api": "dalle"}))

    assert cli.main(["a cat", "-f", str(config_file)]) == 1
    assert "Unknown API: dalle" in capsys.readouterr().out


def test_failure_result_exits_nonzero(monkeypatch, capsys):
    monkeypatch.setattr(
        cli, "generate",
        lambda api, options, transport=None: GenerationResult(success=False, error="blocked", details="reason"),
    )

    assert cli.main(["a cat", "-t", "gemini", "-g", "key"]) == 1
    out = capsys.readouterr().out
    assert "Image generation failed: blocked" in out
    assert "reason" in out
    assert preferences.get_config()["lastOutputDir"] == "./images"


def test_network_error_exits_nonzero(monkeypatch):
    def failing_generate(api, options, transport=None):
        raise requests.exceptions.ConnectionError("unreachable")

    monkeypatch.setattr(cli, "generate", failing_generate)

    assert cli.main(["a cat", "-t", "gemini", "-g", "key"]) == 1


def test_interactive_answers_override_arguments(monkeypatch, captured_generate):
    monkeypatch.setattr(
        cli, "run_interactive_mode",
        lambda options, prefs: {"api": "gemini", "gemini_key": "typed", "prompt": "typed prompt"},
    )

    assert cli.main(["-i", "--no-open"]) == 0
    assert captured_generate["options"].prompt == "typed prompt"


def test_interactive_cancel(monkeypatch):
    def cancelled(options, prefs):
        raise EOFError

    monkeypatch.setattr(cli, "run_interactive_mode", cancelled)

    assert cli.main(["-i"]) == 1

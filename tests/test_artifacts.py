from __future__ import annotations

import base64
import binascii
import json
import logging

import pytest

from imagegen.core.artifacts import decode_base64, mask_and_save_json, save_file


def test_save_file_base64_round_trip(tmp_path, image_b64):
    target = tmp_path / "nested" / "deeper" / "image.png"

    returned = save_file(str(target), image_b64, is_base64=True, silent=True)

    assert returned == str(target)
    assert base64.b64encode(target.read_bytes()).decode("ascii") == image_b64


def test_save_file_writes_text_and_overwrites(tmp_path):
    target = tmp_path / "note.txt"
    save_file(str(target), "first", silent=True)
    save_file(str(target), "second", silent=True)
    assert target.read_text(encoding="utf-8") == "second"


def test_save_file_logs_confirmation_unless_silent(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="imagegen.core.artifacts")

    save_file(str(tmp_path / "loud.txt"), "x")
    save_file(str(tmp_path / "quiet.txt"), "x", silent=True)

    messages = [record.getMessage() for record in caplog.records]
    assert any("loud.txt" in message for message in messages)
    assert not any("quiet.txt" in message for message in messages)


def test_save_file_propagates_filesystem_errors(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(OSError):
        save_file(str(blocker / "child" / "image.png"), "data", silent=True)


def test_mask_and_save_json_masks_payloads(tmp_path, image_b64):
    response = {"predictions": [{"bytesBase64Encoded": image_b64, "mimeType": "image/png"}]}
    target = tmp_path / "json" / "response.json"

    mask_and_save_json(response, str(target), silent=True)

    text = target.read_text(encoding="utf-8")
    assert image_b64 not in text
    assert '\n  "predictions"' in text
    saved = json.loads(text)
    assert saved["predictions"][0]["bytesBase64Encoded"].startswith("[BASE64_DATA_MASKED: ~")
    assert response["predictions"][0]["bytesBase64Encoded"] == image_b64


def test_mask_and_save_json_respects_indent(tmp_path):
    target = tmp_path / "plain.json"
    mask_and_save_json({"a": 1}, str(target), silent=True, indent=4)
    assert target.read_text(encoding="utf-8") == '{\n    "a": 1\n}'


@pytest.mark.parametrize("payload", ["aGk", "aGk=", b"aGk", "aG\nk="])
def test_decode_base64_tolerates_missing_padding_and_whitespace(payload):
    assert decode_base64(payload) == b"hi"


def test_decode_base64_rejects_truncated_payload():
    with pytest.raises(binascii.Error):
        decode_base64("abcde")

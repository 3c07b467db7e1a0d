from __future__ import annotations

import copy
import math
import re

import pytest

from imagegen.core.masking import infer_response_kind, mask_base64_content, mask_placeholder
from imagegen.core.types import ResponseKind

PLACEHOLDER = re.compile(r"^\[BASE64_DATA_MASKED: ~(\d+) KB\]$")


def _gemini_response(*parts):
    return {"candidates": [{"content": {"parts": list(parts)}, "finishReason": "STOP"}]}


def test_documents_without_vendor_arrays_are_copied_unchanged():
    original = {"error": {"message": "x" * 500}, "nested": [{"data": "y" * 300}]}
    snapshot = copy.deepcopy(original)

    masked = mask_base64_content(original)

    assert masked == snapshot
    assert masked is not original
    assert original == snapshot


@pytest.mark.parametrize("value", [None, "plain", 42, 3.5])
def test_non_container_input_passes_through(value):
    assert mask_base64_content(value) == value


@pytest.mark.parametrize("length, masked", [(100, False), (101, True), (4096, True)])
def test_imagen_payload_masked_only_above_threshold(length, masked):
    payload = "A" * length
    result = mask_base64_content({"predictions": [{"bytesBase64Encoded": payload, "mimeType": "image/png"}]})

    value = result["predictions"][0]["bytesBase64Encoded"]
    if masked:
        match = PLACEHOLDER.match(value)
        assert match is not None
        assert int(match.group(1)) == math.floor(length / 4 * 3 / 1024)
    else:
        assert value == payload
    assert result["predictions"][0]["mimeType"] == "image/png"


def test_placeholder_size():
    assert mask_placeholder("A" * 4096) == "[BASE64_DATA_MASKED: ~3 KB]"
    assert mask_placeholder("A" * 1000) == "[BASE64_DATA_MASKED: ~0 KB]"


def test_original_response_is_not_mutated(image_b64):
    response = {"predictions": [{"bytesBase64Encoded": image_b64}]}
    mask_base64_content(response)
    assert response["predictions"][0]["bytesBase64Encoded"] == image_b64


def test_gemini_inline_data_masked_and_text_untouched(image_b64):
    long_text = "word " * 100
    response = _gemini_response(
        {"text": long_text},
        {"inlineData": {"mimeType": "image/png", "data": image_b64}},
    )

    masked = mask_base64_content(response)
    parts = masked["candidates"][0]["content"]["parts"]

    assert parts[0]["text"] == long_text
    assert PLACEHOLDER.match(parts[1]["inlineData"]["data"])
    assert parts[1]["inlineData"]["mimeType"] == "image/png"


def test_long_string_at_unrecognized_path_is_kept(image_b64):
    response = {"predictions": [{"images": [{"bytesBase64Encoded": image_b64}]}]}
    assert mask_base64_content(response) == response


def test_masking_is_idempotent(image_b64):
    response = _gemini_response({"inlineData": {"mimeType": "image/png", "data": image_b64}})
    once = mask_base64_content(response)
    assert mask_base64_content(once) == once


def test_explicit_kind_overrides_shape_inference(image_b64):
    response = {"predictions": [{"bytesBase64Encoded": image_b64}]}
    assert mask_base64_content(response, kind=ResponseKind.GEMINI) == response
    assert PLACEHOLDER.match(
        mask_base64_content(response, kind="imagen")["predictions"][0]["bytesBase64Encoded"]
    )


@pytest.mark.parametrize(
    "response",
    [
        {"candidates": [None, {"content": None}, {"content": {"parts": "nope"}}]},
        {"candidates": [{"content": {"parts": [None, "text", {"inlineData": None}]}}]},
        {"predictions": [None, "x" * 200, {"bytesBase64Encoded": 12345}]},
    ],
)
def test_malformed_shapes_do_not_raise(response):
    assert mask_base64_content(response) == response


def test_infer_response_kind():
    assert infer_response_kind({"predictions": []}) is ResponseKind.IMAGEN
    assert infer_response_kind({"candidates": []}) is ResponseKind.GEMINI
    assert infer_response_kind({"predictions": {}}) is None
    assert infer_response_kind([]) is None

"""Schema-driven masking of base64 payloads embedded in vendor responses.

Purpose:
    Produce a copy of an API response that is safe to log or persist: every
    binary payload at a vendor-known location is replaced by a size-only
    placeholder such as `[BASE64_DATA_MASKED: ~512 KB]`.

Path discovery:
    Locations come from the vendor schema, never from content sniffing.
    - Imagen: `predictions[i].bytesBase64Encoded`
    - Gemini: `candidates[i].content.parts[j].inlineData.data`
    Long strings elsewhere pass through untouched, and values of 100 characters
    or fewer are never masked even at a known location.

Failure handling:
    Never raises on malformed input. Unexpected shapes just produce no
    candidate paths for that branch.
"""

import copy
import math

from imagegen.core.json_path import get_value_at_path, set_value_at_path
from imagegen.core.types import ResponseKind

MASK_THRESHOLD = 100


def find_imagen_base64_paths(obj) -> list:
    """Return candidate payload paths for an Imagen `predict` response."""
    predictions = obj.get("predictions") if isinstance(obj, dict) else None
    if not isinstance(predictions, list):
        return []
    return [f"predictions[{i}].bytesBase64Encoded" for i in range(len(predictions))]


def find_gemini_base64_paths(obj) -> list:
    """Return candidate payload paths for a Gemini `generateContent` response."""
    candidates = obj.get("candidates") if isinstance(obj, dict) else None
    if not isinstance(candidates, list):
        return []

    paths = []
    for i, candidate in enumerate(candidates):
        parts = get_value_at_path(candidate, "content.parts")
        if not isinstance(parts, list):
            continue
        for j in range(len(parts)):
            paths.append(f"candidates[{i}].content.parts[{j}].inlineData.data")
    return paths


_PATH_FINDERS = {
    ResponseKind.IMAGEN: find_imagen_base64_paths,
    ResponseKind.GEMINI: find_gemini_base64_paths,
}


def infer_response_kind(obj):
    """Guess the vendor from the structural signature of a decoded response.

    Returns:
        `ResponseKind.IMAGEN` for an array-valued `predictions`,
        `ResponseKind.GEMINI` for an array-valued `candidates`, else `None`.
    """
    if not isinstance(obj, dict):
        return None
    if isinstance(obj.get("predictions"), list):
        return ResponseKind.IMAGEN
    if isinstance(obj.get("candidates"), list):
        return ResponseKind.GEMINI
    return None


def mask_placeholder(value: str) -> str:
    """Build the placeholder for a base64 string, sized in decoded KiB."""
    return f"[BASE64_DATA_MASKED: ~{math.floor(len(value) / 4 * 3 / 1024)} KB]"


def mask_base64_content(obj, kind=None):
    """Return a deep copy of `obj` with known base64 payloads masked.

    Args:
        obj: Decoded API response. Non-container values are returned as-is.
        kind: Vendor schema to apply. When `None` it is inferred from the
            response shape via `infer_response_kind`.

    Returns:
        Masked deep copy. `obj` itself is never modified.
    """
    if not isinstance(obj, (dict, list)):
        return obj

    masked = copy.deepcopy(obj)
    if kind is None:
        kind = infer_response_kind(masked)
    if kind is None:
        return masked

    for path in _PATH_FINDERS[ResponseKind(kind)](masked):
        value = get_value_at_path(masked, path)
        if isinstance(value, str) and len(value) > MASK_THRESHOLD:
            set_value_at_path(masked, path, mask_placeholder(value))

    return masked

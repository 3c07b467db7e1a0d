"""Artifact writer for decoded images and JSON side-channel files.

Processing flow:
    1. Create every missing ancestor directory of the target path.
    2. Optionally decode the payload from Base64. Missing `=` padding is
       restored first; whitespace inside the payload is ignored.
    3. Write (overwrite) the file and log a confirmation line.

Error handling strategy:
    Filesystem errors (permissions, disk full, invalid paths) and undecodable
    Base64 (`binascii.Error`) propagate to the caller. No retry and no cleanup
    of partially written files is attempted.
"""

import base64
import json
import logging
import os

from imagegen.core.masking import mask_base64_content

logger = logging.getLogger(__name__)


def ensure_directory(path: str) -> str:
    """Create `path` (and parents) when missing and return it."""
    if path and not os.path.exists(path):
        os.makedirs(path, exist_ok=True)
    return path


def decode_base64(data) -> bytes:
    """Decode a Base64 `str` or `bytes` payload, tolerating missing padding."""
    if isinstance(data, str):
        data = data.encode("ascii", errors="ignore")
    data = b"".join(data.split()).rstrip(b"=")
    data += b"=" * (-len(data) % 4)
    return base64.b64decode(data)


def save_file(path: str, data, is_base64: bool = False, silent: bool = False) -> str:
    """Write `data` to `path`, creating parent directories as needed.

    Args:
        path: Destination file path. An existing file is overwritten.
        data: `str` or `bytes` payload.
        is_base64: Decode `data` from Base64 into raw bytes before writing.
        silent: Suppress the confirmation log line.

    Returns:
        `path`, unchanged.
    """
    ensure_directory(os.path.dirname(path))

    if is_base64:
        data = decode_base64(data)

    if isinstance(data, bytes):
        with open(path, "wb") as f:
            f.write(data)
    else:
        with open(path, "w", encoding="utf-8") as f:
            f.write(data)

    if not silent:
        logger.info("File saved to: %s", path)

    return path


def mask_and_save_json(obj, path: str, silent: bool = False, indent: int = 2, kind=None) -> str:
    """Mask embedded payloads in `obj` and persist it as indented JSON.

    The written file never contains a raw payload longer than the masking
    threshold at a vendor-known location. `kind` is forwarded to
    `mask_base64_content`.
    """
    masked = mask_base64_content(obj, kind=kind)
    return save_file(path, json.dumps(masked, indent=indent, ensure_ascii=False), silent=silent)

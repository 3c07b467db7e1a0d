"""Gemini (`generateContent`) request flow and response normalizer.

Processing flow:
    1. Build a text-to-image or reference-image request. Reference images are
       Base64-encoded inline; any unreadable image aborts the invocation.
    2. Persist the masked request, send it with the API key header.
    3. Save non-2xx replies to `<requestId>_error.json` and report them.
    4. Normalize the response: persist it masked, honor the safety stop on the
       first candidate, then extract inline image parts in order.

Candidate handling:
    Only `candidates[0]` is consulted, by convention of the image model.

Error handling strategy:
    Missing structure or no image parts is a warning, not a failure. A
    traversal error inside the extraction loop degrades to success with a
    warning. Network and filesystem errors propagate.
"""

import base64
import json
import logging
import os
import time
from dataclasses import replace

from imagegen.config.provider_config import GEMINI_MODEL, gemini_url
from imagegen.core.artifacts import ensure_directory, mask_and_save_json, save_file
from imagegen.core.json_path import get_value_at_path
from imagegen.core.types import ErrorKind, GenerationResult, ResponseKind, SavedArtifact
from imagegen.image.client import post_json

logger = logging.getLogger(__name__)

SAFETY_FINISH_REASON = "IMAGE_SAFETY"

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}


def get_mime_type(file_path: str) -> str:
    """Return the image MIME type for a file extension (JPEG when unknown)."""
    ext = os.path.splitext(file_path)[1].lower()
    return MIME_TYPES.get(ext, "image/jpeg")


def image_to_base64(image_path: str) -> str:
    with open(image_path, "rb") as f:
        return base64.b64encode(f.read()).decode("ascii")


def new_request_id(reference_images, timestamp=None) -> str:
    """Build the request id from the first reference image name, if any."""
    timestamp = timestamp if timestamp is not None else int(time.time() * 1000)
    if not reference_images:
        return f"gemini_text_to_image_{timestamp}"

    first = os.path.splitext(os.path.basename(reference_images[0]))[0]
    if len(reference_images) > 1:
        return f"gemini_{first}_and_{len(reference_images) - 1}_more_{timestamp}"
    return f"gemini_{first}_{timestamp}"


def build_gemini_request(prompt: str, reference_images=()) -> dict:
    """Build the `generateContent` body.

    Raises:
        OSError: A reference image could not be read.
    """
    parts = [{"text": prompt}]
    for image_path in reference_images:
        parts.append({
            "inline_data": {
                "mime_type": get_mime_type(image_path),
                "data": image_to_base64(image_path),
            }
        })

    return {
        "contents": [{"parts": parts}],
        "generationConfig": {"responseModalities": ["Text", "Image"]},
    }


def normalize_gemini_response(result, request_id: str, output_dir: str, json_dir: str) -> GenerationResult:
    """Persist and interpret a Gemini response, saving inline images.

    Args:
        result: Decoded response JSON. Never mutated.
        request_id: Prefix for the response JSON and image filenames.
        output_dir: Directory receiving decoded images.
        json_dir: Directory receiving the masked response JSON.

    Returns:
        Failure with `safety_block` when candidate 0 stopped for image safety,
        otherwise success (possibly with an empty image list or a warning).
    """
    response_file = mask_and_save_json(
        result, os.path.join(json_dir, f"{request_id}_response.json"), kind=ResponseKind.GEMINI
    )
    json_files = {"response": response_file}

    if get_value_at_path(result, "candidates[0].finishReason") == SAFETY_FINISH_REASON:
        logger.error("Image generation was blocked for safety reasons. The prompt may have triggered a safety filter.")
        return GenerationResult(
            success=False,
            error="Image generation was blocked for safety reasons",
            error_kind=ErrorKind.CONTENT_POLICY,
            safety_block=True,
            json_files=json_files,
        )

    saved = []
    try:
        candidates = result.get("candidates") if isinstance(result, dict) else None
        if candidates:
            candidate = candidates[0]
            parts = get_value_at_path(candidate, "content.parts")
            if parts:
                image_count = 0
                for part in parts:
                    inline_data = part.get("inlineData")
                    if inline_data and inline_data.get("data"):
                        image_count += 1
                        mime_type = inline_data.get("mimeType") or "image/png"
                        ext = mime_type.split("/")[1]
                        filename = os.path.join(output_dir, f"{request_id}_generated_{image_count}.{ext}")
                        saved.append(save_file(filename, inline_data["data"], is_base64=True))

                if image_count == 0:
                    logger.warning("No images found in the response; check the response JSON file")
            else:
                logger.warning("Response is missing the content or parts field")
        else:
            logger.warning("Response is missing the candidates field")

    except (AttributeError, TypeError, KeyError, IndexError, ValueError):
        logger.exception("Error while processing the response")
        return GenerationResult(
            success=True,
            output_dir=output_dir,
            json_dir=json_dir,
            images=tuple(saved),
            artifacts=tuple(SavedArtifact(path) for path in saved),
            generated=len(saved),
            warning="Some parts of the response could not be processed",
            json_files=json_files,
        )

    return GenerationResult(
        success=True,
        output_dir=output_dir,
        json_dir=json_dir,
        images=tuple(saved),
        artifacts=tuple(SavedArtifact(path) for path in saved),
        generated=len(saved),
        json_files=json_files,
    )


def _save_error_response(response, path: str) -> str:
    try:
        return save_file(path, json.dumps(response.json(), indent=2, ensure_ascii=False))
    except ValueError:
        return save_file(path, response.text)


def generate_images_with_gemini(options, transport=None) -> GenerationResult:
    """Run one Gemini generation: request, persist, normalize.

    Requires `options.gemini_key`; the CLI validates it before calling.
    """
    reference_images = list(options.reference_images or [])
    output_dir = ensure_directory(options.output_dir)
    json_dir = ensure_directory(options.json_dir)
    request_id = new_request_id(reference_images)

    try:
        request_data = build_gemini_request(options.prompt, reference_images)
    except OSError as err:
        logger.error("Error processing reference image %s", err.filename)
        return GenerationResult(
            success=False,
            error=f"Failed to process image: {err.filename}",
            error_kind=ErrorKind.VALIDATION,
            details=str(err),
        )

    suffix = " (with references)" if reference_images else ""
    logger.info("Generating image with the Gemini API%s", suffix)
    logger.info("Prompt: %s", options.prompt)
    if reference_images:
        logger.info("Using %s reference image(s)", len(reference_images))

    request_file = mask_and_save_json(request_data, os.path.join(json_dir, f"{request_id}_request.json"))
    json_files = {"request": request_file}

    model = options.model or GEMINI_MODEL
    url = gemini_url(model)
    logger.info("Sending request to Gemini endpoint: %s", url)

    debug_path = os.path.join(json_dir, f"{request_id}_debug.json") if options.debug else None
    response = post_json(
        url,
        request_data,
        headers={"x-goog-api-key": options.gemini_key},
        transport=transport,
        debug_path=debug_path,
    )

    if not response.ok:
        logger.error("API returned error: %s", response.status_code)
        logger.error("Error details: %s", response.text)
        json_files["error"] = _save_error_response(response, os.path.join(json_dir, f"{request_id}_error.json"))
        logger.error("Error response saved to: %s", json_files["error"])
        return GenerationResult(
            success=False,
            error=f"API error: {response.status_code}",
            error_kind=ErrorKind.HTTP_ERROR,
            status_code=response.status_code,
            json_files=json_files,
        )

    try:
        result = response.json()
    except ValueError:
        logger.error("Gemini returned a non-JSON body")
        return GenerationResult(
            success=False,
            error="Response body is not valid JSON",
            error_kind=ErrorKind.MALFORMED_RESPONSE,
            status_code=response.status_code,
            json_files=json_files,
        )

    if options.debug:
        json_files["response_debug"] = mask_and_save_json(
            result, os.path.join(json_dir, f"{request_id}_response_debug.json"), kind=ResponseKind.GEMINI
        )

    normalized = normalize_gemini_response(result, request_id, output_dir, json_dir)
    json_files.update(normalized.json_files)
    artifacts = normalized.artifacts + tuple(SavedArtifact(path, "json") for path in json_files.values())
    return replace(normalized, json_files=json_files, artifacts=artifacts)

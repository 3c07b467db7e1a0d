"""Imagen (Vertex AI `:predict`) request flow and response normalizer.

Processing flow:
    1. Build the `predict` request from `GenerationOptions`.
    2. Persist the request JSON, mint a bearer token, send the request.
    3. Classify HTTP rejections (content-policy block, person-generation
       permission error, generic HTTP error).
    4. Persist the masked response and normalize it into a `GenerationResult`.

Normalization:
    - Filter scan over every prediction: an "all images filtered" reason ends
      the run as a responsible-AI block; partial filter reasons add to the
      blocked count.
    - Extraction over predictions without a filter reason, supporting both the
      `images[]` shape and the top-level `bytesBase64Encoded` shape.
    - Accounting of generated + blocked against the requested count. A
      shortfall is only logged.

Determinism:
    Filenames depend only on the request id and prediction/image indices, so
    re-running over the same response overwrites the same files.

Error handling strategy:
    Expected vendor failures become failure results, including image data that
    cannot be Base64-decoded. Network errors (after the transport's single
    fallback) and filesystem errors propagate.
"""

import binascii
import logging
import os
import re
import time
from dataclasses import replace

from google.auth.exceptions import GoogleAuthError

from imagegen.config.provider_config import GOOGLE_CLOUD_LOCATION, IMAGEN_MODEL, imagen_url
from imagegen.core.artifacts import ensure_directory, mask_and_save_json, save_file
from imagegen.core.types import ErrorKind, GenerationResult, ResponseKind, SavedArtifact
from imagegen.image.auth import get_access_token
from imagegen.image.client import post_json

logger = logging.getLogger(__name__)

ALL_FILTERED_MARKER = "All images were filtered out"
FILTERED_COUNT_PATTERN = re.compile(r"filtered out (\d+) generated images")

SAFETY_BLOCK_MARKER = "safety filter threshold prohibited"
PERSON_GENERATION_MARKER = (
    "You have chosen the 'Allow (All ages)' option for Person Generation, "
    "but this option is not available to you"
)


def new_request_id() -> str:
    return f"imagen_{int(time.time() * 1000)}"


def build_imagen_request(options, project_id: str, location: str, model: str) -> dict:
    """Build the Vertex AI `predict` body for one prompt."""
    return {
        "endpoint": f"projects/{project_id}/locations/{location}/publishers/google/models/{model}",
        "instances": [
            {"prompt": options.prompt},
        ],
        "parameters": {
            "aspectRatio": options.aspect_ratio,
            "sampleCount": options.count,
            "negativePrompt": options.negative_prompt,
            "enhancePrompt": options.enhance,
            "personGeneration": options.person_generation,
            "safetySetting": options.safety,
            "addWatermark": options.watermark,
            "includeRaiReason": True,
            "language": "auto",
        },
    }


def classify_imagen_error(response) -> GenerationResult:
    """Map a non-2xx Imagen reply to a failure result.

    Error handling:
        - 400 + safety-threshold message -> content-policy block.
        - 400 + person-generation message -> permission issue with guidance.
        - Anything else -> generic HTTP error with the vendor message/status,
          or the raw body when it is not JSON.
    """
    status = response.status_code
    message = ""
    detail = ""

    try:
        body = response.json()
    except ValueError:
        body = None
        message = response.text

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or ""
        detail = error.get("status") or ""

        if status == 400 and SAFETY_BLOCK_MARKER in message:
            logger.error("Safety filter blocked this prompt:")
            logger.error("  -> %s", message)
            logger.error("Try adjusting your prompt or changing the safety setting.")
            return GenerationResult(
                success=False,
                error="Safety filter blocked this prompt",
                error_kind=ErrorKind.CONTENT_POLICY,
                blocked=True,
                details=message,
                status_code=status,
            )

        if status == 400 and PERSON_GENERATION_MARKER in message:
            logger.error("Person generation permission error:")
            logger.error("  -> %s", message)
            logger.error('Try "allow_adult" instead of "allow_all" for the person generation setting.')
            return GenerationResult(
                success=False,
                error="Person generation permission error",
                error_kind=ErrorKind.PERMISSION,
                permission_issue=True,
                details=message,
                status_code=status,
            )

    logger.error("Error %s: %s", status, message)
    return GenerationResult(
        success=False,
        error=message or f"HTTP {status}",
        error_kind=ErrorKind.HTTP_ERROR,
        details=detail or None,
        status_code=status,
    )


def _scan_filter_reasons(predictions):
    """Return `(all_filtered_reason, blocked_count)` for the prediction list."""
    blocked_count = 0
    for prediction in predictions:
        reason = prediction.get("raiFilteredReason") if isinstance(prediction, dict) else None
        if not reason:
            continue
        if not isinstance(reason, str):
            reason = str(reason)

        if ALL_FILTERED_MARKER in reason:
            return reason, blocked_count

        match = FILTERED_COUNT_PATTERN.search(reason)
        if match:
            filtered = int(match.group(1))
            blocked_count += filtered
            logger.warning("%s image(s) were removed by the responsible-AI safety filter.", filtered)
        else:
            logger.warning("Some images were removed by the responsible-AI filter:")
        logger.warning("  -> %s", reason)

    return None, blocked_count


def _extract_images(predictions, request_id, output_dir):
    saved = []
    for i, prediction in enumerate(predictions):
        if not isinstance(prediction, dict) or prediction.get("raiFilteredReason"):
            continue

        images = prediction.get("images")
        if isinstance(images, list) and images:
            logger.info("Found %s image(s) in standard format", len(images))
            for index, image in enumerate(images):
                data = image.get("bytesBase64Encoded") if isinstance(image, dict) else None
                if data:
                    filename = os.path.join(output_dir, f"{request_id}_{i}_{index}.png")
                    saved.append(save_file(filename, data, is_base64=True))

        elif prediction.get("bytesBase64Encoded"):
            mime_type = prediction.get("mimeType") or "image/png"
            ext = mime_type.split("/")[-1] or "png"
            filename = os.path.join(output_dir, f"{request_id}_{i}.{ext}")
            saved.append(save_file(filename, prediction["bytesBase64Encoded"], is_base64=True))

    return saved


def normalize_imagen_response(result, request_id: str, output_dir: str, requested_count: int = 1) -> GenerationResult:
    """Interpret an Imagen `predict` response and save its images.

    Args:
        result: Decoded response JSON. Never mutated.
        request_id: Prefix for every image filename.
        output_dir: Directory receiving decoded images.
        requested_count: `sampleCount` sent with the request.

    Returns:
        Success with saved images when at least one image was written, a
        responsible-AI block when every image was filtered, otherwise a failure
        carrying the accumulated blocked count.
    """
    predictions = result.get("predictions") if isinstance(result, dict) else None
    if not isinstance(predictions, list) or not predictions:
        logger.error("No predictions found in response.")
        return GenerationResult(
            success=False,
            error="No predictions found in response",
            error_kind=ErrorKind.MALFORMED_RESPONSE,
        )

    all_filtered_reason, blocked_count = _scan_filter_reasons(predictions)
    if all_filtered_reason:
        logger.error("The responsible-AI filter blocked all images:")
        logger.error("  -> %s", all_filtered_reason)
        logger.error("Try rephrasing your prompt or adjusting the safety setting.")
        return GenerationResult(
            success=False,
            error="Content was filtered by responsible AI",
            error_kind=ErrorKind.CONTENT_POLICY,
            blocked=True,
            rai_filtered=True,
            details=all_filtered_reason,
        )

    try:
        saved = _extract_images(predictions, request_id, output_dir)
    except binascii.Error as err:
        logger.error("Could not decode image data: %s", err)
        return GenerationResult(
            success=False,
            error="Image data is not valid Base64",
            error_kind=ErrorKind.MALFORMED_RESPONSE,
            details=str(err),
            blocked=blocked_count > 0,
            blocked_count=blocked_count,
        )

    generated = len(saved)

    if blocked_count > 0:
        logger.info("Generated %s image(s) (%s blocked by safety filters)", generated, blocked_count)
    else:
        logger.info("Generated %s image(s), none blocked", generated)

    accounted = generated + blocked_count
    if accounted < requested_count:
        logger.info(
            "Note: you requested %s image(s), but only %s were accounted for.",
            requested_count,
            accounted,
        )

    if not saved:
        logger.error("No images were saved.")
        return GenerationResult(
            success=False,
            error="No images were saved",
            error_kind=ErrorKind.NO_IMAGES,
            blocked=blocked_count > 0,
            blocked_count=blocked_count,
        )

    return GenerationResult(
        success=True,
        output_dir=output_dir,
        images=tuple(saved),
        artifacts=tuple(SavedArtifact(path) for path in saved),
        generated=generated,
        blocked_count=blocked_count,
        blocked=blocked_count > 0,
    )


def generate_images_with_imagen(options, transport=None) -> GenerationResult:
    """Run one Imagen generation: request, persist, normalize.

    Requires `options.key_file` and `options.project_id`; the CLI validates
    both before calling.
    """
    model = options.model or IMAGEN_MODEL
    location = options.location or GOOGLE_CLOUD_LOCATION
    output_dir = ensure_directory(options.output_dir)
    json_dir = ensure_directory(options.json_dir)

    request_id = new_request_id()
    request_data = build_imagen_request(options, options.project_id, location, model)
    request_url = imagen_url(options.project_id, location, model)

    request_file = mask_and_save_json(
        request_data, os.path.join(json_dir, f"{request_id}_request.json"), kind=ResponseKind.IMAGEN
    )
    json_files = {"request": request_file}

    logger.info("Fetching access token...")
    try:
        access_token = get_access_token(options.key_file, transport.proxies if transport else None)
    except (GoogleAuthError, ValueError) as err:
        logger.error("Failed to obtain an access token: %s", err)
        return GenerationResult(
            success=False,
            error="Failed to obtain an access token",
            error_kind=ErrorKind.AUTHENTICATION,
            details=str(err),
            json_files=json_files,
        )

    logger.info("Sending request to: %s", request_url)
    logger.info("Generating images with prompt: %s", options.prompt)

    debug_path = os.path.join(json_dir, f"{request_id}_debug.json") if options.debug else None
    response = post_json(
        request_url,
        request_data,
        headers={"Authorization": f"Bearer {access_token}"},
        transport=transport,
        debug_path=debug_path,
    )

    if not response.ok:
        return replace(classify_imagen_error(response), json_files=json_files)

    try:
        result = response.json()
    except ValueError:
        logger.error("Imagen returned a non-JSON body")
        return GenerationResult(
            success=False,
            error="Response body is not valid JSON",
            error_kind=ErrorKind.MALFORMED_RESPONSE,
            status_code=response.status_code,
            json_files=json_files,
        )

    json_files["response"] = mask_and_save_json(
        result, os.path.join(json_dir, f"{request_id}_response.json"), kind=ResponseKind.IMAGEN
    )

    normalized = normalize_imagen_response(result, request_id, output_dir, options.count)
    artifacts = normalized.artifacts + tuple(SavedArtifact(path, "json") for path in json_files.values())
    return replace(normalized, json_dir=json_dir, json_files=json_files, artifacts=artifacts)

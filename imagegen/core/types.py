"""Shared records passed between the CLI, `image.service` and the normalizers.

Architectural role:
    Defines the closed vendor set (`ResponseKind`), the failure taxonomy
    (`ErrorKind`), the per-invocation option record and the immutable result
    record returned by `image.service.generate`.

Determinism:
    The classes are purely structural and state-free.
"""

from dataclasses import dataclass, field
from enum import Enum


class ResponseKind(str, Enum):
    """Vendor API whose request/response schema applies to one invocation."""

    IMAGEN = "imagen"
    GEMINI = "gemini"


class ErrorKind(str, Enum):
    """Failure classification attached to unsuccessful results."""

    CONTENT_POLICY = "content_policy"
    PERMISSION = "permission"
    AUTHENTICATION = "authentication"
    HTTP_ERROR = "http_error"
    MALFORMED_RESPONSE = "malformed_response"
    NO_IMAGES = "no_images"
    VALIDATION = "validation"


@dataclass(frozen=True)
class SavedArtifact:
    """File written during one invocation. `kind` is `image` or `json`."""

    path: str
    kind: str = "image"


@dataclass
class GenerationOptions:
    """Every request option accepted by `image.service.generate`.

    Attributes left as `None` fall back to provider defaults from
    `config.provider_config` when the vendor request is built.
    """

    prompt: str = ""
    model: str | None = None

    # Imagen (Vertex AI) settings
    project_id: str | None = None
    key_file: str | None = None
    location: str | None = None
    aspect_ratio: str = "1:1"
    count: int = 1
    negative_prompt: str = ""
    enhance: bool = False
    person_generation: str = "allow_adult"
    safety: str = "block_few"
    watermark: bool = True

    # Gemini settings
    gemini_key: str | None = None
    reference_images: list = field(default_factory=list)

    output_dir: str = "./images"
    json_dir: str = "./output"
    debug: bool = False


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one invocation.

    Attributes:
        success: Whether at least the vendor call and normalization completed.
        error: Human-readable failure summary (failures only).
        error_kind: Failure classification (failures only).
        details: Verbatim vendor reason or diagnostic text.
        status_code: HTTP status for vendor-side rejections.
        images: Saved image paths in encounter order.
        artifacts: Every file written by the normalizer.
        generated: Number of images written.
        blocked_count: Number of images suppressed by a content filter, when
            known. This is the "blocked count" of a partially filtered Imagen
            response.
        blocked: A content filter suppressed some or all images. Always a
            flag; read `blocked_count` for the number.
        rai_filtered: Imagen responsible-AI filter removed every image.
        safety_block: Gemini stopped the candidate for safety reasons.
        permission_issue: The account may not use a requested option.
        warning: Non-fatal problem encountered while extracting images.
        json_files: Role (`request`, `response`, `error`, ...) to JSON path.
    """

    success: bool
    error: str | None = None
    error_kind: ErrorKind | None = None
    details: str | None = None
    status_code: int | None = None

    images: tuple = ()
    artifacts: tuple = ()
    generated: int = 0
    blocked_count: int = 0

    blocked: bool = False
    rai_filtered: bool = False
    safety_block: bool = False
    permission_issue: bool = False
    warning: str | None = None

    output_dir: str | None = None
    json_dir: str | None = None
    json_files: dict = field(default_factory=dict)

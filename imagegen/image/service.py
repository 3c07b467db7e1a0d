"""Image service dispatcher used by the CLI and interactive adapters.

Role in pipeline:
    - Receives the vendor choice and a `GenerationOptions` record.
    - Resolves the `ResponseKind` up front, so the matching request builder,
      masker schema and normalizer are fixed before any response is seen.
    - Returns the normalizer's `GenerationResult` unchanged.

Error handling strategy:
    - Unknown vendors raise `ValueError`.
    - Network and filesystem exceptions from the vendor flows propagate.
"""

from imagegen.core.types import GenerationOptions, GenerationResult, ResponseKind
from imagegen.image.gemini import generate_images_with_gemini
from imagegen.image.imagen import generate_images_with_imagen

_FLOWS = {
    ResponseKind.IMAGEN: generate_images_with_imagen,
    ResponseKind.GEMINI: generate_images_with_gemini,
}


def resolve_kind(vendor) -> ResponseKind:
    """Return the `ResponseKind` for a vendor name or kind.

    Raises:
        ValueError: `vendor` is not `imagen` or `gemini`.
    """
    try:
        return ResponseKind(vendor)
    except ValueError:
        raise ValueError(f"Unknown API: {vendor}") from None


def generate(vendor, options: GenerationOptions, transport=None) -> GenerationResult:
    """Generate images with the selected vendor API.

    Args:
        vendor: `"imagen"`, `"gemini"` or a `ResponseKind`.
        options: Request options for this invocation.
        transport: Proxy configuration from `image.proxy.build_transport_config`.

    Returns:
        The vendor flow's `GenerationResult`.
    """
    return _FLOWS[resolve_kind(vendor)](options, transport=transport)

"""
Command-line adapter for imagegen.

Architectural role:
- Parses arguments and an optional JSON config file into one option set.
- Validates per-API credentials before any network call.
- Delegates generation to `imagegen.image.service.generate`.

Option precedence (highest first):
1. Explicit command-line arguments (the positional prompt always wins).
2. Values from `--config-file` (camelCase or snake_case keys).
3. Stored preferences and environment defaults.
4. Built-in defaults.

Request lifecycle (per invocation):
1. Create a sample `.env` when missing and read stored preferences.
2. Merge options, optionally run the interactive flow.
3. Validate credentials and the prompt for the chosen API.
4. Build the proxy configuration and call `generate`.
5. Report the result, open the output directory, store last-used directories.

Error handling strategy:
- Validation problems print a message and exit with status 1.
- Failure results exit with status 1 after reporting the error.
- Network errors (after the single proxy fallback) and filesystem errors are
  logged and exit with status 1.
"""

import argparse
import json
import logging
import os
import re
import sys
import webbrowser
from pathlib import Path

import requests

from imagegen.api.interactive import run_interactive_mode
from imagegen.config.preferences import get_config, save_config
from imagegen.config.provider_config import (
    ASPECT_RATIOS,
    GOOGLE_CLOUD_LOCATION,
    GOOGLE_CLOUD_PROJECT,
    IMAGE_COUNTS,
    PERSON_GENERATION_MODES,
    SAFETY_SETTINGS,
    create_sample_env_file,
)
from imagegen.core.types import GenerationOptions
from imagegen.image.auth import get_gemini_api_key, get_service_account_key_path
from imagegen.image.proxy import build_transport_config, detect_system_proxy
from imagegen.image.service import generate

logger = logging.getLogger(__name__)


class CliError(Exception):
    """Validation failure reported to the user with exit status 1."""


BUILTIN_DEFAULTS = {
    "prompt": None,
    "api": "imagen",
    "model": None,
    "reference_images": [],
    "output_dir": "./images",
    "json_dir": "./output",
    "project_id": GOOGLE_CLOUD_PROJECT,
    "key_file": None,
    "gemini_key": None,
    "location": GOOGLE_CLOUD_LOCATION,
    "aspect_ratio": "1:1",
    "count": 1,
    "negative_prompt": "",
    "enhance": False,
    "person_generation": "allow_adult",
    "safety": "block_few",
    "watermark": True,
    "interactive": False,
    "debug": False,
    "detect_proxy": False,
    "no_proxy": False,
    "no_open": False,
}


# =========================================================
# ARGUMENTS AND CONFIG FILES
# =========================================================

def build_parser():
    """Return the argument parser. Every default is `None` so explicit values can be told apart."""
    parser = argparse.ArgumentParser(
        prog="imagegen",
        description="Generate images with Google's Imagen or Gemini APIs.",
    )
    parser.add_argument("prompt", nargs="?", default=None, help="Image generation prompt")

    parser.add_argument("-t", "--api", choices=["imagen", "gemini"], default=None, help="API used for generation")
    parser.add_argument("-m", "--model", default=None, help="Model id")
    parser.add_argument("-r", "--reference-images", nargs="+", default=None,
                        help="Reference image paths for Gemini (one or more)")
    parser.add_argument("-f", "--config-file", default=None, help="JSON file with generation options")

    parser.add_argument("-o", "--output-dir", default=None, help="Directory for generated images")
    parser.add_argument("-j", "--json-dir", default=None, help="Directory for request/response JSON files")

    parser.add_argument("-P", "--project-id", default=None, help="Google Cloud project id")
    parser.add_argument("-k", "--key-file", default=None, help="Service account JSON key file")
    parser.add_argument("-g", "--gemini-key", default=None, help="Gemini API key")
    parser.add_argument("-l", "--location", default=None, help="API location")

    parser.add_argument("-a", "--aspect-ratio", choices=ASPECT_RATIOS, default=None, help="Aspect ratio (Imagen only)")
    parser.add_argument("-c", "--count", type=int, choices=IMAGE_COUNTS, default=None,
                        help="Number of images (Imagen only)")
    parser.add_argument("-n", "--negative-prompt", default=None, help="Negative prompt (Imagen only)")
    parser.add_argument("-e", "--enhance", action="store_true", default=None, help="Enhance prompt (Imagen only)")
    parser.add_argument("-b", "--person-generation", choices=PERSON_GENERATION_MODES, default=None,
                        help="Person generation (Imagen only)")
    parser.add_argument("-s", "--safety", choices=SAFETY_SETTINGS, default=None, help="Safety setting (Imagen only)")
    parser.add_argument("-w", "--watermark", dest="watermark", action="store_true", default=None,
                        help="Add watermark (Imagen only)")
    parser.add_argument("--no-watermark", dest="watermark", action="store_false", default=None,
                        help="Do not add a watermark (Imagen only)")

    parser.add_argument("-i", "--interactive", action="store_true", default=None, help="Run interactive mode")
    parser.add_argument("-d", "--debug", action="store_true", default=None, help="Show debug information")
    parser.add_argument("-x", "--detect-proxy", action="store_true", default=None,
                        help="Force detection of system proxy settings")
    parser.add_argument("-N", "--no-proxy", action="store_true", default=None, help="Disable proxy usage")
    parser.add_argument("--no-open", action="store_true", default=None,
                        help="Do not open the output directory afterwards")
    return parser


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).replace("-", "_").lower()


def load_config_file(path: str) -> dict:
    """Read a JSON options file and normalize its keys to option names.

    Raises:
        FileNotFoundError: The file does not exist.
        ValueError: The file is not a JSON object.
    """
    config_path = os.path.abspath(path)
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found at {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a JSON object")

    logger.debug("Loaded configuration from %s", config_path)
    return {_snake_case(k): v for k, v in data.items() if _snake_case(k) in BUILTIN_DEFAULTS}


def merge_options(args, file_config=None, preferences=None) -> dict:
    """Combine defaults, preferences, config-file values and explicit arguments."""
    preferences = preferences or {}
    options = dict(BUILTIN_DEFAULTS)

    if preferences.get("defaultApi"):
        options["api"] = preferences["defaultApi"]
    if preferences.get("lastOutputDir"):
        options["output_dir"] = preferences["lastOutputDir"]
    if preferences.get("lastJsonDir"):
        options["json_dir"] = preferences["lastJsonDir"]

    options.update(file_config or {})
    options.update({k: v for k, v in vars(args).items() if v is not None and k in BUILTIN_DEFAULTS})

    if not options.get("output_dir"):
        options["output_dir"] = preferences.get("lastOutputDir") or "./images"
    if not options.get("json_dir"):
        options["json_dir"] = preferences.get("lastJsonDir") or "./output"
    return options


# =========================================================
# VALIDATION
# =========================================================

def resolve_imagen_credentials(options: dict):
    """Return `(key_file, project_id)` for Imagen or raise `CliError`."""
    key_file = options.get("key_file") or get_service_account_key_path()
    if not key_file:
        raise CliError(
            "The Imagen API requires a service account key file. Provide one via:\n"
            "  1. the --key-file argument\n"
            "  2. the GOOGLE_APPLICATION_CREDENTIALS environment variable\n"
            "  3. a .service-account.json file in the current directory"
        )

    if not options.get("prompt"):
        raise CliError("A prompt is required. Pass it as the first argument or use interactive mode.")

    print(f"Using service account key file: {key_file}")
    if not os.path.exists(key_file):
        raise CliError(f"Key file not found at {key_file}")

    try:
        with open(key_file, "r", encoding="utf-8") as f:
            key_data = json.load(f)
    except ValueError as err:
        raise CliError(f"Error parsing service account key file: {err}") from err

    project_id = options.get("project_id") or key_data.get("project_id") or GOOGLE_CLOUD_PROJECT
    if not project_id:
        raise CliError(
            "Project id not found in the service account and not provided as an argument "
            "or environment variable"
        )

    print(f"Using project id: {project_id}")
    return key_file, project_id


def resolve_gemini_key(options: dict) -> str:
    """Return the Gemini API key or raise `CliError`."""
    gemini_key = options.get("gemini_key") or get_gemini_api_key()
    if not gemini_key:
        raise CliError(
            "The Gemini API requires an API key. Provide one via:\n"
            "  1. the --gemini-key argument\n"
            "  2. the GEMINI_API_KEY environment variable\n"
            "  3. a key stored by a previous interactive session"
        )

    if not options.get("prompt"):
        raise CliError("A prompt is required. Pass it as the first argument or use interactive mode.")

    return gemini_key


def to_generation_options(options: dict) -> GenerationOptions:
    return GenerationOptions(
        prompt=options["prompt"],
        model=options.get("model"),
        project_id=options.get("project_id"),
        key_file=options.get("key_file"),
        location=options.get("location"),
        aspect_ratio=options["aspect_ratio"],
        count=int(options["count"]),
        negative_prompt=options.get("negative_prompt") or "",
        enhance=bool(options["enhance"]),
        person_generation=options["person_generation"],
        safety=options["safety"],
        watermark=bool(options["watermark"]),
        gemini_key=options.get("gemini_key"),
        reference_images=list(options.get("reference_images") or []),
        output_dir=options["output_dir"],
        json_dir=options["json_dir"],
        debug=bool(options["debug"]),
    )


# =========================================================
# OUTPUT
# =========================================================

def open_directory(path: str) -> None:
    """Best-effort open of `path` in the platform file browser."""
    try:
        if not webbrowser.open(Path(os.path.abspath(path)).as_uri()):
            logger.warning("Could not open the output directory automatically")
    except webbrowser.Error:
        logger.warning("Could not open the output directory automatically")


def report_result(result) -> None:
    if result.success:
        print("Image generation succeeded!")
        for image in result.images:
            print(f"  {image}")
        if result.warning:
            print(f"Warning: {result.warning}")
        return

    print(f"Image generation failed: {result.error}")
    if result.details:
        print(f"  -> {result.details}")


# =========================================================
# MAIN
# =========================================================

def main(argv=None):
    """Run one CLI invocation and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(format="%(message)s", level=logging.DEBUG if args.debug else logging.INFO)

    create_sample_env_file()
    preferences = get_config()

    try:
        file_config = load_config_file(args.config_file) if args.config_file else {}
    except (OSError, ValueError) as err:
        print(f"Error loading config file: {err}")
        return 1

    options = merge_options(args, file_config, preferences)

    if options["debug"]:
        proxy_settings = detect_system_proxy(force=bool(options["detect_proxy"]))
        logger.debug("System proxy settings:")
        logger.debug("  HTTP_PROXY: %s", proxy_settings.get("httpProxy") or "not set")
        logger.debug("  HTTPS_PROXY: %s", proxy_settings.get("httpsProxy") or "not set")
        logger.debug("  NO_PROXY: %s", proxy_settings.get("noProxy") or "not set")

    if options["interactive"]:
        try:
            options.update(run_interactive_mode(options, preferences))
        except (EOFError, KeyboardInterrupt):
            print("\nInteractive mode cancelled.")
            return 1

    api = options["api"]
    try:
        if api == "imagen":
            options["key_file"], options["project_id"] = resolve_imagen_credentials(options)
        elif api == "gemini":
            options["gemini_key"] = resolve_gemini_key(options)
        else:
            raise CliError(f"Unknown API: {api}")
    except CliError as err:
        print(f"Error: {err}")
        return 1

    transport = build_transport_config(
        no_proxy=bool(options["no_proxy"]),
        detect_proxy=bool(options["detect_proxy"]),
    )

    try:
        result = generate(api, to_generation_options(options), transport=transport)
    except (requests.exceptions.RequestException, OSError):
        logger.exception("Image generation failed")
        return 1

    report_result(result)
    if not result.success:
        return 1

    if result.images and not options["no_open"]:
        open_directory(result.output_dir or options["output_dir"])

    save_config({
        "lastOutputDir": options["output_dir"],
        "lastJsonDir": options["json_dir"],
    })
    return 0


if __name__ == "__main__":
    sys.exit(main())

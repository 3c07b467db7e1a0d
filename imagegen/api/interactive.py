"""
Interactive terminal flow that collects generation options.

Interface responsibilities:
- Ask which API to use and remember it as the new default.
- Obtain credentials when none are configured (service-account key path or
  Gemini API key), optionally persisting them for later runs.
- Ask for the prompt, Gemini reference images or Imagen parameters, and the
  output/JSON directories.

Input validation behavior:
- Required answers are re-asked until non-empty.
- Paths that must exist are re-asked until they do.
- Choice answers accept either the list number or the literal value.

Error handling strategy:
- EOF and keyboard interrupts propagate to `cli.main`, which cancels the run.
- An unreadable service-account key is reported and re-asked.
"""

import json
import os
import shutil

from imagegen.config.preferences import save_config
from imagegen.config.provider_config import (
    ASPECT_RATIOS,
    GOOGLE_CLOUD_PROJECT,
    IMAGE_COUNTS,
    SAFETY_SETTINGS,
    config_directory,
)
from imagegen.image.auth import SERVICE_ACCOUNT_FILENAME, get_gemini_api_key, get_service_account_key_path

REFERENCE_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
INTERACTIVE_PERSON_MODES = ["allow_all", "allow_adult", "dont_allow"]


# =========================================================
# PROMPT HELPERS
# =========================================================

def ask_text(message, default=None, required=False, validate=None):
    """Ask for free text. `validate` returns an error string or `None`."""
    suffix = f" [{default}]" if default not in (None, "") else ""
    while True:
        answer = input(f"{message}{suffix}: ").strip()
        if not answer and default is not None:
            answer = str(default)
        if required and not answer:
            print("A value is required.")
            continue
        error = validate(answer) if validate and answer else None
        if error:
            print(error)
            continue
        return answer


def ask_confirm(message, default=False) -> bool:
    hint = "Y/n" if default else "y/N"
    while True:
        answer = input(f"{message} ({hint}): ").strip().lower()
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please answer y or n.")


def ask_choice(message, choices, default=None):
    """Ask the user to pick one of `choices` by number or value."""
    print(message)
    for number, choice in enumerate(choices, start=1):
        marker = " (default)" if choice == default else ""
        print(f"  {number}. {choice}{marker}")

    while True:
        answer = input("Choice: ").strip()
        if not answer and default is not None:
            return default
        if answer.isdigit() and 1 <= int(answer) <= len(choices):
            return choices[int(answer) - 1]
        for choice in choices:
            if answer == str(choice):
                return choice
        print("Invalid choice.")


def _must_exist(path):
    return None if os.path.exists(path) else "File does not exist"


def _reference_image(path):
    if not os.path.isfile(path):
        return "File does not exist"
    if os.path.splitext(path)[1].lower() not in REFERENCE_IMAGE_EXTENSIONS:
        return "Unsupported image type"
    return None


# =========================================================
# CREDENTIALS
# =========================================================

def _imagen_credentials(options):
    key_file = get_service_account_key_path()

    if key_file:
        print(f"Using service account key: {key_file}")
    else:
        key_file = ask_text(
            "Path to your Google Cloud service account JSON key file",
            required=True,
            validate=_must_exist,
        )
        if ask_confirm("Save a copy of this key file for future use?", default=True):
            destination = os.path.join(config_directory(), SERVICE_ACCOUNT_FILENAME)
            os.makedirs(config_directory(), exist_ok=True)
            shutil.copyfile(key_file, destination)
            print(f"Saved service account key to: {destination}")

    while True:
        try:
            with open(key_file, "r", encoding="utf-8") as f:
                key_data = json.load(f)
            break
        except (OSError, ValueError) as err:
            print(f"Error reading service account key file: {err}")
            key_file = ask_text("Path to your service account JSON key file", required=True, validate=_must_exist)

    project_id = options.get("project_id") or key_data.get("project_id") or GOOGLE_CLOUD_PROJECT
    return key_file, project_id


def _gemini_key():
    api_key = get_gemini_api_key()
    if api_key:
        print("Using the configured Gemini API key")
        return api_key

    api_key = ask_text("Enter your Gemini API key", required=True)
    if ask_confirm("Save this API key for future use?", default=True):
        save_config({"geminiApiKey": api_key})
        print("Saved Gemini API key for future use")
    return api_key


# =========================================================
# MAIN FLOW
# =========================================================

def run_interactive_mode(options: dict, preferences: dict) -> dict:
    """Collect options interactively.

    Args:
        options: Options merged so far (used for defaults such as project id).
        preferences: Stored preferences (default API, last directories).

    Returns:
        Option overrides keyed like `cli.BUILTIN_DEFAULTS`.
    """
    api = ask_choice("Which API do you want to use?", ["imagen", "gemini"], default=preferences.get("defaultApi"))
    save_config({"defaultApi": api})

    answers = {"api": api}

    if api == "imagen":
        answers["key_file"], answers["project_id"] = _imagen_credentials(options)
    else:
        answers["gemini_key"] = _gemini_key()

    answers["prompt"] = ask_text("Enter your image generation prompt", required=True)

    if api == "gemini":
        reference_images = []
        if ask_confirm("Do you want to use reference images?", default=False):
            while True:
                reference_images.append(
                    ask_text("Path to a reference image", required=True, validate=_reference_image)
                )
                if not ask_confirm("Add another reference image?", default=False):
                    break
        answers["reference_images"] = reference_images

    else:
        answers["aspect_ratio"] = ask_choice("Aspect ratio:", ASPECT_RATIOS, default="1:1")
        answers["count"] = ask_choice("Number of images to generate:", IMAGE_COUNTS, default=1)
        answers["negative_prompt"] = ask_text("Negative prompt (optional)", default="")
        answers["enhance"] = ask_confirm("Enhance prompt?", default=False)
        answers["safety"] = ask_choice("Safety setting:", SAFETY_SETTINGS, default="block_few")
        answers["person_generation"] = ask_choice(
            "Person generation:", INTERACTIVE_PERSON_MODES, default="allow_adult"
        )
        answers["watermark"] = ask_confirm("Add watermark?", default=False)

    answers["output_dir"] = ask_text(
        "Output directory for images", default=preferences.get("lastOutputDir") or "./images"
    )
    if ask_confirm("Use a custom directory for JSON files (request/response)?", default=True):
        answers["json_dir"] = ask_text(
            "Directory for JSON files", default=preferences.get("lastJsonDir") or "./output"
        )
    else:
        answers["json_dir"] = "./output"

    return answers

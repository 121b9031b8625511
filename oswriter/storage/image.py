"""Source image resolution and verification.

Paths typed by the operator are resolved against the operator's own home
directory, even when the program runs under sudo. Type detection is delegated
to ``file -b``; anything it does not call "ISO 9660" is reported as unknown
and left to the operator to accept.
"""

from __future__ import annotations

import os
import pwd
from pathlib import Path
from typing import Mapping, Optional

from oswriter.domain import ImageSpec, ImageType, MediaType
from oswriter.logging import LoggerFactory
from oswriter.ui.console import Console

from .devices import human_size
from .exceptions import (
    ImageError,
    ImageNotFoundError,
    ImageUnreadableError,
    ImageVerificationExhaustedError,
    SelectionCancelledError,
)
from .write.command_runners import CommandRunner, SubprocessRunner

CANCEL_ANSWERS = ("q", "Q")

log = LoggerFactory.for_image()


def operator_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the home directory of the person who started the program."""
    environ = os.environ if environ is None else environ
    sudo_user = environ.get("SUDO_USER")
    if sudo_user:
        try:
            return Path(pwd.getpwnam(sudo_user).pw_dir)
        except KeyError:
            log.warning(f"SUDO_USER {sudo_user} has no passwd entry")
    home = environ.get("HOME")
    if home:
        return Path(home)
    return Path.home()


def resolve_image_path(raw: str, environ: Optional[Mapping[str, str]] = None) -> Path:
    """Expand ``~``, ``~user`` and relative paths against the operator's home.

    Raises:
        ImageNotFoundError: If ``~user`` names an account with no passwd entry
    """
    text = raw.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        text = text[1:-1]
    if text == "~" or text.startswith("~/"):
        return operator_home(environ) / text[2:]
    if text.startswith("~"):
        user, _, rest = text[1:].partition("/")
        try:
            home = Path(pwd.getpwnam(user).pw_dir)
        except KeyError:
            log.debug(f"No passwd entry for {user}")
            raise ImageNotFoundError(text) from None
        return home / rest
    path = Path(text)
    if not path.is_absolute():
        return operator_home(environ) / path
    return path


def classify_image(path: Path, runner: Optional[CommandRunner] = None) -> str:
    """Return the ``file -b`` description, or "unknown" if it cannot run."""
    runner = runner or SubprocessRunner()
    result = runner.run(["file", "-b", str(path)])
    description = result.stdout.strip()
    if result.returncode != 0 or not description:
        log.debug(f"file classifier failed for {path}: {result.stderr.strip()}")
        return "unknown"
    return description


def detect_image_type(description: str) -> ImageType:
    if "iso 9660" in description.lower():
        return ImageType.ISO9660
    return ImageType.UNKNOWN


def verify_image(
    raw_path: str,
    runner: Optional[CommandRunner] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ImageSpec:
    """Resolve and check a source image.

    Raises:
        ImageNotFoundError: If nothing exists at the path
        ImageUnreadableError: If the path is not a regular file or cannot be read
    """
    path = resolve_image_path(raw_path, environ)
    log.debug(f"Looking for image at {path}")
    if not path.exists():
        raise ImageNotFoundError(path)
    if not path.is_file():
        raise ImageUnreadableError(path, "not a regular file")
    try:
        with path.open("rb") as handle:
            handle.read(1)
    except OSError as error:
        raise ImageUnreadableError(path, error.strerror or str(error)) from error
    description = classify_image(path, runner)
    return ImageSpec(
        path=path.resolve(),
        size_bytes=path.stat().st_size,
        image_type=detect_image_type(description),
        readable=True,
        type_description=description,
    )


def prompt_for_image(
    console: Console,
    media_type: MediaType,
    runner: Optional[CommandRunner] = None,
    max_attempts: Optional[int] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ImageSpec:
    """Ask for an image path until a usable one is given.

    Raises:
        SelectionCancelledError: If the operator types ``q``
        ImageVerificationExhaustedError: If ``max_attempts`` is reached
    """
    console.show("")
    console.info("You'll need to provide an image file for the installation.")
    attempts = 0
    while True:
        raw = console.ask("Enter the full path to the ISO image (q to cancel): ")
        if raw in CANCEL_ANSWERS:
            raise SelectionCancelledError()
        attempts += 1
        image = _try_image(console, raw, media_type, runner, environ)
        if image is not None:
            console.success("Image verification completed:")
            console.success(f"- Path: {image.path}")
            console.success(f"- Size: {human_size(image.size_bytes)}")
            log.info(f"Image verified: {image.path} ({image.size_bytes} bytes)")
            return image
        console.error("Please provide a valid path.")
        if max_attempts is not None and attempts >= max_attempts:
            raise ImageVerificationExhaustedError(attempts)


def _try_image(
    console: Console,
    raw: str,
    media_type: MediaType,
    runner: Optional[CommandRunner],
    environ: Optional[Mapping[str, str]],
) -> Optional[ImageSpec]:
    if not raw:
        console.error("Error: No path entered.")
        return None
    try:
        console.info(f"Looking for ISO at: {resolve_image_path(raw, environ)}")
        image = verify_image(raw, runner, environ)
    except ImageError as error:
        log.info(f"Image rejected: {error}")
        console.error(f"Error: {error}")
        return None
    if not image.is_iso and media_type is not MediaType.CUSTOM:
        console.warning("Warning: The file does not appear to be a valid ISO image.")
        console.warning(f"File type: {image.type_description}")
        if not console.confirm("Do you want to continue anyway?"):
            return None
        log.info(f"Operator accepted non-ISO image {image.path}")
    return image

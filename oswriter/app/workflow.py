"""End-to-end "create bootable media" workflow.

Steps run strictly in order and each returns its result into the
:class:`WorkflowContext`:

    list USB candidates -> safety filter -> operator selection
    -> media type -> image verification -> write dispatch -> summary

Anything raised before the dispatcher runs happens before the device is
touched. Operator cancellation ends the run with exit code 0; every other
error ends it with exit code 1 and a specific cause.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from oswriter.config import settings
from oswriter.domain import MediaType
from oswriter.logging import LoggerFactory
from oswriter.menu import MEDIA_MENU, choose
from oswriter.menu.definitions import EXIT_KEY
from oswriter.storage.devices import (
    SYS_BLOCK_ROOT,
    format_device_label,
    human_size,
    list_usb_candidates,
)
from oswriter.storage.exceptions import OsWriterError, SelectionCancelledError
from oswriter.storage.image import prompt_for_image
from oswriter.storage.safety import require_eligible
from oswriter.storage.write.command_runners import CommandRunner, SubprocessRunner
from oswriter.storage.write.dispatcher import create_job, dispatch
from oswriter.ui.console import Console

from .context import WorkflowContext
from .selection import select_device

log = LoggerFactory.for_system()

_FAILURE_MESSAGES = {
    MediaType.LINUX: "Failed to create Linux bootable USB",
    MediaType.WINDOWS: "Failed to create Windows bootable USB",
    MediaType.MULTIBOOT: "Failed to install Ventoy",
    MediaType.CUSTOM: "Failed to create bootable USB with custom image",
}


def show_candidates(console: Console, candidates) -> None:
    console.show("Devices found:")
    if not candidates:
        console.show("  (none)")
    for device in candidates:
        console.show(
            f"  {device.name} {human_size(device.size_bytes)} "
            f"{device.model or ''} {device.vendor or ''} {device.transport or ''}".rstrip()
        )


def print_success_summary(console: Console, context: WorkflowContext) -> None:
    console.success("===== SUMMARY =====")
    console.success(f"Operation completed on drive: {context.device.device_path}")
    media_type = context.media_type
    if media_type is MediaType.MULTIBOOT:
        console.success("Ventoy installation completed")
        console.success("You can copy multiple ISOs to the Ventoy partition")
    else:
        if media_type is MediaType.CUSTOM:
            console.success("Custom image")
        else:
            console.success(f"Operating system: {media_type.label}")
        console.success(f"Image used: {context.image.path}")
        console.success(f"Image size: {human_size(context.image.size_bytes)}")
    console.show("")
    console.success("Process completed! The USB drive is ready to use.")


def print_failure_summary(console: Console, context: WorkflowContext) -> None:
    console.error("===== SUMMARY =====")
    drive = context.device.device_path if context.device else "(none selected)"
    console.error(f"Operation FAILED on drive: {drive}")
    if context.media_type is not None:
        console.error(_FAILURE_MESSAGES[context.media_type])
    if context.failure:
        console.error(f"Cause: {context.failure}")
    console.show("")
    console.error("Process failed! Please check the error messages above.")


def run_workflow(
    console: Console,
    runner: Optional[CommandRunner] = None,
    windows_installer: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    sys_block: Path = SYS_BLOCK_ROOT,
) -> WorkflowContext:
    """Run one create-bootable-media workflow and return its final context."""
    runner = runner or SubprocessRunner()
    max_attempts = settings.get_optional_int("max_prompt_attempts")
    context = WorkflowContext()
    try:
        console.info("Detecting connected USB drives...")
        candidates = list_usb_candidates(runner, sys_block)
        show_candidates(console, candidates)
        eligible = require_eligible(candidates)

        context.device = select_device(eligible, console, max_attempts=max_attempts)
        console.success(f"Using drive: {format_device_label(context.device)}")

        choice = choose(console, MEDIA_MENU, max_attempts)
        if choice == EXIT_KEY:
            console.success("Exiting. Goodbye!")
            context.cancelled = True
            return context
        context.media_type = MediaType(choice)

        if context.media_type.requires_image:
            context.image = prompt_for_image(
                console, context.media_type, runner, max_attempts, environ
            )

        job = create_job(context.device, context.image, context.media_type)
        context.job = dispatch(job, console, runner, windows_installer, sys_block)
    except SelectionCancelledError as error:
        log.info(f"Workflow cancelled: {error}")
        console.warning(str(error))
        context.cancelled = True
        return context
    except OsWriterError as error:
        log.error(f"Workflow failed: {error}")
        console.error(f"Error: {error}")
        context.failure = str(error)
        if context.device is not None:
            print_failure_summary(console, context)
        return context

    if context.succeeded:
        media_label = context.media_type.label
        console.success(f"{media_label} bootable USB created successfully!")
        print_success_summary(console, context)
    else:
        context.failure = context.job.failure_detail or "write failed"
        console.error(f"Error: {context.failure}")
        print_failure_summary(console, context)
    return context

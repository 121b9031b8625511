"""Write backends.

Each backend turns a confirmed :class:`WriteJob` into one external tool
invocation and returns a :class:`BackendResult`. Whether a run counts as a
success is decided by a small pure ``derive_*_success`` function per backend,
so the rules can be tested without running anything.

Backends:
    raw-copy            dd with fsync, then sync. No capacity pre-check.
    windows-installer   WoeUSB or WoeUSB-ng. The dispatcher checks capacity
                        before confirming. The combined output is captured
                        in full, and an "Error:" marker fails the run even
                        on exit code 0.
    multiboot-installer Ventoy. Exit code is used as-is.
"""

from __future__ import annotations

from typing import Optional

from oswriter.config import settings
from oswriter.domain import BackendResult, BlockDevice, ImageSpec, WriteJob
from oswriter.logging import LoggerFactory
from oswriter.storage.devices import human_size
from oswriter.storage.exceptions import (
    BackendExecutionError,
    BackendUnavailableError,
    CapacityExceededError,
)
from oswriter.ui.console import Console

from .command_runners import CommandResult, CommandRunner
from .progress import ProgressReporter

WINDOWS_ERROR_MARKER = "Error:"


# ==============================================================================
# Success derivation
# ==============================================================================


def derive_raw_copy_success(exit_code: int, output: str = "") -> bool:
    return exit_code == 0


def derive_windows_success(exit_code: int, output: str) -> bool:
    """WoeUSB can exit 0 while logging an internal error, so check both."""
    return exit_code == 0 and WINDOWS_ERROR_MARKER not in (output or "")


def derive_multiboot_success(exit_code: int, output: str = "") -> bool:
    return exit_code == 0


def _to_backend_result(result: CommandResult, derive) -> BackendResult:
    output = result.combined_output
    return BackendResult(
        exit_code=result.returncode,
        combined_output=output,
        success=derive(result.returncode, output),
    )


# ==============================================================================
# Command builders
# ==============================================================================


def build_dd_command(image: ImageSpec, device: BlockDevice, block_size: str = "4M"):
    return [
        "dd",
        f"if={image.path}",
        f"of={device.device_path}",
        f"bs={block_size}",
        "status=progress",
        "conv=fsync",
    ]


def build_windows_command(
    installer: str, image: ImageSpec, device: BlockDevice, filesystem: str = "NTFS"
):
    if installer == "woeusb":
        return [
            "woeusb",
            "--target-filesystem",
            filesystem.upper(),
            "--device",
            str(image.path),
            device.device_path,
        ]
    return [
        installer,
        "--target",
        device.device_path,
        "--source",
        str(image.path),
        "--target-filesystem",
        filesystem.lower(),
    ]


def build_multiboot_command(device: BlockDevice):
    return ["ventoy", "-i", device.device_path]


# ==============================================================================
# Capacity checks
# ==============================================================================


def check_capacity(image: ImageSpec, device: BlockDevice) -> None:
    """Raise CapacityExceededError if the image cannot fit on the device."""
    if image.size_bytes > device.size_bytes:
        raise CapacityExceededError(
            image.path, image.size_bytes, device.device_path, device.size_bytes
        )


def capacity_hint(
    image: ImageSpec, device: BlockDevice, ratio: Optional[float] = None
) -> Optional[str]:
    """Return a hint when a failed image was close to the device's capacity."""
    if ratio is None:
        ratio = settings.get_float(
            "capacity_warning_ratio", settings.DEFAULT_CAPACITY_WARNING_RATIO
        )
    if image.size_bytes > device.size_bytes * ratio:
        return (
            "The ISO may be too large for this USB drive "
            f"(ISO size: {human_size(image.size_bytes)}, "
            f"USB drive size: {human_size(device.size_bytes)})."
        )
    return None


# ==============================================================================
# Backends
# ==============================================================================


def _sync(runner: CommandRunner) -> None:
    result = runner.run(["sync"])
    if result.returncode != 0:
        LoggerFactory.for_write().warning(f"sync exited with {result.returncode}")


def write_raw_image(job: WriteJob, runner: CommandRunner, console: Console) -> BackendResult:
    """Stream the image onto the raw device with dd."""
    log = LoggerFactory.for_write(job.job_id)
    if not runner.which("dd"):
        raise BackendUnavailableError("dd")
    block_size = settings.get_setting("dd_block_size", settings.DEFAULT_DD_BLOCK_SIZE)
    command = build_dd_command(job.image, job.device, block_size)
    console.info("Copying the image to the USB drive. Please wait...")
    reporter = ProgressReporter(
        console.show,
        total_bytes=job.image.size_bytes,
        log=LoggerFactory.for_progress(job.job_id),
    )
    result = _to_backend_result(runner.stream(command, reporter), derive_raw_copy_success)
    log.debug(f"dd exited with {result.exit_code}")
    if not result.success:
        last_line = result.combined_output.strip().splitlines()[-1:] or ["dd failed"]
        raise BackendExecutionError(
            f"dd exited with code {result.exit_code}: {last_line[0]}",
            exit_code=result.exit_code,
            output=result.combined_output,
        )
    if reporter.last_update is not None:
        copied = human_size(reporter.last_update.bytes_copied)
        console.info(f"Copied {copied}")
        log.info(f"dd reported {reporter.last_update.bytes_copied} bytes copied")
    _sync(runner)
    return result


def write_windows_image(
    job: WriteJob,
    runner: CommandRunner,
    console: Console,
    installer: Optional[str],
) -> BackendResult:
    """Create Windows install media with WoeUSB."""
    log = LoggerFactory.for_write(job.job_id)
    if not installer:
        raise BackendUnavailableError(
            "WoeUSB",
            "For Ubuntu/Debian: sudo apt install woeusb or woeusb-ng",
        )
    filesystem = settings.get_setting("windows_target_filesystem", "NTFS")
    command = build_windows_command(installer, job.image, job.device, filesystem)
    console.info(
        "Copying the ISO image to the USB drive. This process may take a long time..."
    )
    raw = runner.run(command, merge_stderr=True)
    result = _to_backend_result(raw, derive_windows_success)
    if result.combined_output:
        console.show(result.combined_output.rstrip())
    _sync(runner)
    if not result.success:
        if result.exit_code == 0:
            reason = f"{installer} reported an error despite exiting with code 0"
        else:
            reason = f"{installer} exited with code {result.exit_code}"
        hint = capacity_hint(job.image, job.device)
        if hint:
            reason = f"{reason}. {hint}"
        log.error(reason)
        raise BackendExecutionError(
            reason, exit_code=result.exit_code, output=result.combined_output
        )
    return result


def install_multiboot(job: WriteJob, runner: CommandRunner, console: Console) -> BackendResult:
    """Install Ventoy on the device."""
    if not runner.which("ventoy"):
        raise BackendUnavailableError(
            "Ventoy",
            "You can install Ventoy from https://www.ventoy.net/en/download.html",
        )
    console.info("Installing Ventoy on the USB drive...")
    raw = runner.run_interactive(build_multiboot_command(job.device))
    result = _to_backend_result(raw, derive_multiboot_success)
    if not result.success:
        raise BackendExecutionError(
            f"ventoy exited with code {result.exit_code}",
            exit_code=result.exit_code,
            output=result.combined_output,
        )
    return result

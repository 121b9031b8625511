"""Run a confirmed write job through its backend."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from oswriter.domain import (
    Backend,
    BackendResult,
    BlockDevice,
    ImageSpec,
    JobState,
    MediaType,
    WriteJob,
)
from oswriter.logging import EventLogger, LoggerFactory, new_job_id, operation_context
from oswriter.storage import devices, safety
from oswriter.storage.exceptions import (
    BackendExecutionError,
    CapacityExceededError,
    DeviceChangedError,
    DeviceError,
    DeviceNotFoundError,
    SelectionCancelledError,
    WriteError,
)
from oswriter.ui.console import Console

from . import backends
from .command_runners import CommandRunner, SubprocessRunner


def create_job(
    device: BlockDevice, image: Optional[ImageSpec], media_type: MediaType
) -> WriteJob:
    if media_type.requires_image and image is None:
        raise ValueError(f"{media_type.label} media requires a source image")
    return WriteJob(
        device=device,
        image=image,
        backend=media_type.backend,
        media_type=media_type,
        job_id=new_job_id("write"),
    )


def confirm_destruction(console: Console, job: WriteJob) -> None:
    """Final "are you sure" before anything touches the device.

    Raises:
        SelectionCancelledError: If the operator declines
    """
    console.warning(
        f"WARNING: This process will FORMAT and erase ALL data on {job.device.device_path}"
    )
    if not console.confirm("Are you sure you want to continue?"):
        raise SelectionCancelledError()


def check_same_device(selected: BlockDevice, current: Optional[BlockDevice]) -> BlockDevice:
    """Make sure the device about to be written is the one that was confirmed.

    Raises:
        DeviceNotFoundError: If the device is gone
        DeviceChangedError: If it no longer passes the safety filter or its
            size, model or vendor differ from the confirmed snapshot
    """
    if current is None:
        raise DeviceNotFoundError(selected.device_path)
    verdict = safety.evaluate_device(current)
    if not verdict.eligible:
        raise DeviceChangedError(selected.device_path, verdict.reason.value)
    for attribute in ("size_bytes", "model", "vendor"):
        before = getattr(selected, attribute)
        after = getattr(current, attribute)
        if before != after:
            raise DeviceChangedError(
                selected.device_path, f"{attribute} was {before!r}, now {after!r}"
            )
    return current


def _run_backend(
    job: WriteJob,
    runner: CommandRunner,
    console: Console,
    windows_installer: Optional[str],
):
    if job.backend is Backend.RAW_COPY:
        return backends.write_raw_image(job, runner, console)
    if job.backend is Backend.WINDOWS_INSTALLER:
        return backends.write_windows_image(job, runner, console, windows_installer)
    if job.backend is Backend.MULTIBOOT_INSTALLER:
        return backends.install_multiboot(job, runner, console)
    raise ValueError(f"Unsupported backend: {job.backend}")


def dispatch(
    job: WriteJob,
    console: Console,
    runner: Optional[CommandRunner] = None,
    windows_installer: Optional[str] = None,
    sys_block: Path = devices.SYS_BLOCK_ROOT,
) -> WriteJob:
    """Confirm, then execute ``job`` exactly once.

    The job ends in SUCCESS or FAILURE. Nothing is retried: a failed write
    leaves the device in an unknown state that only a fresh run can assess.

    Raises:
        SelectionCancelledError: If the operator declines the final confirmation
    """
    runner = runner or SubprocessRunner()
    log = LoggerFactory.for_write(job.job_id)
    console.info(f"Creating bootable USB for {job.media_type.label}...")
    if job.backend is Backend.WINDOWS_INSTALLER:
        try:
            backends.check_capacity(job.image, job.device)
        except CapacityExceededError as error:
            log.error(str(error))
            job.fail(str(error))
            return job
    confirm_destruction(console, job)

    image_path = str(job.image.path) if job.image else None
    EventLogger.log_write_started(
        log, image_path, job.device.device_path, job.backend.value, job_id=job.job_id
    )
    try:
        with operation_context(
            "write",
            job_id=job.job_id,
            device=job.device.device_path,
            backend=job.backend.value,
        ):
            check_same_device(
                job.device, devices.get_device_by_name(job.device.name, runner, sys_block)
            )
            result = _run_backend(job, runner, console, windows_installer)
    except BackendExecutionError as error:
        job.fail(
            str(error),
            BackendResult(error.exit_code or 0, error.output, success=False),
        )
    except (WriteError, DeviceError) as error:
        job.fail(str(error))
    else:
        job.succeed(result)
    EventLogger.log_write_finished(
        log,
        job.device.device_path,
        job.backend.value,
        job.state is JobState.SUCCESS,
        failure=job.failure_detail,
    )
    return job

"""Operator selection of the target drive.

One eligible drive needs a simple y/n. Several drives need an index and then
the exact confirmation token, since a wrong pick among several is the more
likely mistake.
"""

from __future__ import annotations

from typing import Optional, Sequence

from oswriter.config import settings
from oswriter.domain import BlockDevice
from oswriter.logging import LoggerFactory
from oswriter.storage.devices import human_size
from oswriter.storage.exceptions import NoEligibleDeviceError, SelectionCancelledError
from oswriter.ui.console import Console

log = LoggerFactory.for_menu()


def show_device_details(console: Console, device: BlockDevice) -> None:
    console.show("Drive details:")
    console.show(f"- Device: {device.device_path}")
    console.show(f"- Size: {human_size(device.size_bytes)}")
    console.show(f"- Model: {device.model or 'unknown'}")


def parse_index(answer: str, count: int) -> Optional[int]:
    """Return the index if ``answer`` is a plain number below ``count``."""
    if not (answer.isascii() and answer.isdecimal()):
        return None
    index = int(answer)
    if index >= count:
        return None
    return index


def _select_single(console: Console, device: BlockDevice) -> BlockDevice:
    console.success(f"USB drive detected: {device.device_path}")
    show_device_details(console, device)
    if not console.confirm("Do you want to use this drive?"):
        log.info(f"Operator declined {device.name}")
        raise SelectionCancelledError()
    console.success(f"Selected drive: {device.device_path}")
    return device


def _read_index(
    console: Console, devices: Sequence[BlockDevice], max_attempts: Optional[int]
) -> int:
    attempts = 0
    while True:
        answer = console.ask("Enter the number of the USB drive you want to use: ")
        index = parse_index(answer, len(devices))
        if index is not None:
            return index
        attempts += 1
        log.debug(f"Invalid drive index {answer!r}")
        console.error("Invalid selection. Please try again.")
        if max_attempts is not None and attempts >= max_attempts:
            raise SelectionCancelledError(
                f"No valid drive selected after {attempts} attempts."
            )


def _select_multiple(
    console: Console,
    devices: Sequence[BlockDevice],
    confirm_token: str,
    max_attempts: Optional[int],
) -> BlockDevice:
    console.info("Multiple USB drives detected. Please select one:")
    for index, device in enumerate(devices):
        model = f" {device.model}" if device.model else ""
        console.show(f"[{index}] {device.device_path} ({human_size(device.size_bytes)}{model})")

    device = devices[_read_index(console, devices, max_attempts)]
    console.success(f"You selected: {device.device_path}")
    console.warning("ATTENTION: All data on this drive will be erased.")
    show_device_details(console, device)
    answer = console.ask(
        f"Are you SURE you want to continue? (type '{confirm_token}' to proceed): "
    )
    if answer != confirm_token:
        log.info(f"Confirmation token not given for {device.name}")
        raise SelectionCancelledError()
    return device


def select_device(
    devices: Sequence[BlockDevice],
    console: Console,
    confirm_token: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> BlockDevice:
    """Obtain exactly one confirmed target device.

    Raises:
        NoEligibleDeviceError: If ``devices`` is empty
        SelectionCancelledError: If the operator declines at any point
    """
    if not devices:
        raise NoEligibleDeviceError()
    confirm_token = confirm_token or settings.get_setting(
        "confirm_token", settings.DEFAULT_CONFIRM_TOKEN
    )
    console.warning("IMPORTANT: Only USB devices are shown for safety.")
    if len(devices) == 1:
        device = _select_single(console, devices[0])
    else:
        device = _select_multiple(console, devices, confirm_token, max_attempts)
    log.info(f"Target device confirmed: {device.device_path}")
    return device

"""Safety filter that decides which devices may be erased.

Each candidate gets a :class:`SafetyVerdict`. Rules are checked in order and
the first match decides the exclusion reason:

1. Transport is not USB (the registry already drops these, but the filter
   does not trust its input).
2. Name matches the NVMe namespace pattern, whatever the removable flag says.
3. The kernel removable attribute is not exactly ``"1"``. Missing or
   unreadable values exclude the device.
4. A partition is mounted at ``/`` or under ``/boot``, ``/home`` or ``/usr``.

Example:
    from oswriter.storage.safety import eligible_devices, filter_devices

    verdicts = filter_devices(candidates)
    safe = eligible_devices(verdicts)
"""

import re
from typing import Iterable

from oswriter.domain import BlockDevice, ExclusionReason, SafetyVerdict, Verdict
from oswriter.logging import EventLogger, LoggerFactory

from .exceptions import NoEligibleDeviceError

NVME_NAME_PATTERN = re.compile(r"^nvme\d+n\d+")
SYSTEM_MOUNTPOINT_PREFIXES = ("/boot", "/home", "/usr")

log = LoggerFactory.for_usb()


def is_nvme_name(name: str) -> bool:
    return bool(NVME_NAME_PATTERN.match(name or ""))


def is_system_mountpoint(mountpoint: str) -> bool:
    if mountpoint == "/":
        return True
    return any(mountpoint.startswith(prefix) for prefix in SYSTEM_MOUNTPOINT_PREFIXES)


def evaluate_device(device: BlockDevice) -> SafetyVerdict:
    """Return the safety verdict for a single device."""
    if device.transport != "usb" or is_nvme_name(device.name):
        return SafetyVerdict(device, Verdict.EXCLUDED, ExclusionReason.NON_USB_TRANSPORT)
    if device.removable != "1":
        return SafetyVerdict(device, Verdict.EXCLUDED, ExclusionReason.NOT_REMOVABLE)
    if any(is_system_mountpoint(mountpoint) for mountpoint in device.mountpoints):
        return SafetyVerdict(device, Verdict.EXCLUDED, ExclusionReason.SYSTEM_MOUNTPOINT)
    return SafetyVerdict(device, Verdict.ELIGIBLE)


def filter_devices(devices: Iterable[BlockDevice]) -> list[SafetyVerdict]:
    """Return one verdict per device, in input order."""
    verdicts = []
    for device in devices:
        verdict = evaluate_device(device)
        if not verdict.eligible:
            EventLogger.log_device_excluded(log, device.name, verdict.reason.value)
        verdicts.append(verdict)
    return verdicts


def eligible_devices(verdicts: Iterable[SafetyVerdict]) -> list[BlockDevice]:
    return [verdict.device for verdict in verdicts if verdict.eligible]


def require_eligible(devices: Iterable[BlockDevice]) -> list[BlockDevice]:
    """Filter devices and fail closed when none survive.

    Raises:
        NoEligibleDeviceError: If no device passes every check
    """
    verdicts = filter_devices(devices)
    eligible = eligible_devices(verdicts)
    if not eligible:
        log.warning(f"No eligible devices among {len(verdicts)} candidate(s)")
        raise NoEligibleDeviceError(len(verdicts))
    log.info(f"Eligible devices: {', '.join(device.name for device in eligible)}")
    return eligible

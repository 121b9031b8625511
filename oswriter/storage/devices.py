"""USB device discovery using lsblk.

This module is the only place that asks the system which block devices exist.
It runs ``lsblk`` with JSON output, keeps whole disks whose transport is USB,
and turns each row into an immutable :class:`~oswriter.domain.BlockDevice`.

Device Detection:
    lsblk is asked for NAME, SIZE, MODEL, VENDOR, TRAN, HOTPLUG, RM, TYPE and
    MOUNTPOINT (bytes, JSON). Partition rows come back nested under
    ``children`` and are only used to collect mountpoints.

Removable Flag:
    The removable attribute is read from ``/sys/block/<name>/removable``
    rather than lsblk's RM column, which some lsblk builds derive from the
    transport. A missing or unreadable file yields ``None``; deciding what
    that means is left to :mod:`oswriter.storage.safety`.

Errors:
    Any failure to obtain the listing (lsblk missing, non-zero exit,
    malformed JSON) raises :class:`DeviceQueryError`. Unlike a UI refresh,
    the write workflow cannot fall back to stale data.

Example:
    >>> from oswriter.storage.devices import format_device_label, list_usb_candidates
    >>> for device in list_usb_candidates():
    ...     print(format_device_label(device))
    /dev/sdb 7.5GB
"""
import json
import re
from pathlib import Path
from typing import Optional

from oswriter.domain import BlockDevice
from oswriter.logging import LoggerFactory

from .exceptions import DeviceQueryError
from .write.command_runners import CommandRunner, SubprocessRunner

LSBLK_COLUMNS = "NAME,SIZE,MODEL,VENDOR,TRAN,HOTPLUG,RM,TYPE,MOUNTPOINT"
SYS_BLOCK_ROOT = Path("/sys/block")

log = LoggerFactory.for_usb()


def human_size(size_bytes):
    if size_bytes is None:
        return "0B"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"


def format_device_label(device):
    if isinstance(device, BlockDevice):
        name = device.device_path
        size_label = human_size(device.size_bytes)
    elif isinstance(device, dict):
        name = device.get("name") or ""
        size_label = human_size(device.get("size"))
    else:
        name = str(device or "")
        size_label = ""
    if size_label:
        size_label = re.sub(r"\.0([A-Z])", r"\1", size_label)
        return f"{name} {size_label}".strip()
    return name


def get_block_devices(runner: Optional[CommandRunner] = None) -> list[dict]:
    """Return the raw lsblk rows for all block devices.

    Raises:
        DeviceQueryError: lsblk is unavailable, failed, or produced bad JSON
    """
    runner = runner or SubprocessRunner()
    result = runner.run(["lsblk", "-J", "-b", "-o", LSBLK_COLUMNS])
    if result.returncode != 0:
        reason = result.stderr.strip() or f"lsblk exited with {result.returncode}"
        log.error(f"lsblk failed: {reason}")
        raise DeviceQueryError(reason)
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as error:
        log.error(f"lsblk returned invalid JSON: {error}")
        raise DeviceQueryError(f"invalid lsblk output: {error}") from error
    devices = data.get("blockdevices") if isinstance(data, dict) else None
    if not isinstance(devices, list):
        raise DeviceQueryError("lsblk output has no blockdevices list")
    names = [device.get("name") for device in devices if device.get("name")]
    if names:
        log.debug(f"lsblk found {len(names)} devices: {', '.join(names)}")
    else:
        log.debug("lsblk found no block devices")
    return devices


def read_removable_flag(name: str, sys_block: Path = SYS_BLOCK_ROOT) -> Optional[str]:
    """Read the kernel's removable attribute for a disk.

    Returns the stripped file contents, or None when it cannot be read.
    """
    try:
        return (sys_block / name / "removable").read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as error:
        log.debug(f"Cannot read removable flag for {name}: {error}")
        return None


def is_usb_transport(device: dict) -> bool:
    return str(device.get("tran") or "").strip().lower() == "usb"


def list_usb_candidates(
    runner: Optional[CommandRunner] = None,
    sys_block: Path = SYS_BLOCK_ROOT,
) -> list[BlockDevice]:
    """Return whole disks attached over USB, in lsblk order.

    Raises:
        DeviceQueryError: If the block device listing cannot be obtained
    """
    candidates = []
    for device in get_block_devices(runner):
        if device.get("type") != "disk" or not device.get("name"):
            continue
        if not is_usb_transport(device):
            continue
        candidates.append(
            BlockDevice.from_lsblk_dict(
                device, removable=read_removable_flag(device["name"], sys_block)
            )
        )
    log.info(
        f"Found {len(candidates)} USB candidate(s): "
        f"{', '.join(device.name for device in candidates) or 'none'}"
    )
    return candidates


def get_device_by_name(
    name: str,
    runner: Optional[CommandRunner] = None,
    sys_block: Path = SYS_BLOCK_ROOT,
) -> Optional[BlockDevice]:
    """Re-resolve a device by identifier from a fresh lsblk query."""
    if not name:
        return None
    name = name.replace("/dev/", "", 1) if name.startswith("/dev/") else name
    for device in get_block_devices(runner):
        if device.get("name") == name and device.get("type") == "disk":
            return BlockDevice.from_lsblk_dict(
                device, removable=read_removable_flag(name, sys_block)
            )
    return None

"""Domain model for bootable media creation.

Type-safe value objects passed between the workflow steps: devices reported
by lsblk, safety verdicts, verified source images and write jobs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


# ==============================================================================
# Device Domain
# ==============================================================================


@dataclass(frozen=True)
class BlockDevice:
    """A physical block device snapshot reported by the system.

    Snapshots are never mutated; every registry query builds new ones.
    """

    name: str  # e.g., "sdb"
    size_bytes: int
    model: str | None = None
    vendor: str | None = None
    transport: str | None = None  # "usb", "sata", "nvme", ...
    removable: str | None = None  # raw /sys/block/<name>/removable, None if unreadable
    mountpoints: tuple[str, ...] = ()

    @property
    def device_path(self) -> str:
        """Device node path (e.g., /dev/sdb)."""
        return f"/dev/{self.name}"

    @classmethod
    def from_lsblk_dict(
        cls, device: dict[str, Any], removable: str | None = None
    ) -> BlockDevice:
        """Convert an lsblk row to a BlockDevice.

        ``removable`` comes from sysfs, not from the lsblk row, so callers
        pass it in explicitly.

        Raises:
            KeyError: If the name key is missing
            ValueError: If size cannot be converted to int
        """
        name = device["name"]
        size_bytes = int(device.get("size") or 0)

        vendor = device.get("vendor")
        if vendor:
            vendor = vendor.strip()
        model = device.get("model")
        if model:
            model = model.strip()
        transport = device.get("tran")
        if transport:
            transport = transport.strip().lower()

        return cls(
            name=name,
            size_bytes=size_bytes,
            model=model or None,
            vendor=vendor or None,
            transport=transport or None,
            removable=removable,
            mountpoints=tuple(collect_mountpoints(device)),
        )


def collect_mountpoints(device: dict[str, Any]) -> list[str]:
    """Collect mountpoints of a device row and all nested partitions."""
    mountpoints: list[str] = []
    for key in ("mountpoint", "mountpoints"):
        value = device.get(key)
        if isinstance(value, str) and value:
            mountpoints.append(value)
        elif isinstance(value, list):
            mountpoints.extend(item for item in value if item)
    for child in device.get("children", []) or []:
        mountpoints.extend(collect_mountpoints(child))
    return mountpoints


class Verdict(Enum):
    ELIGIBLE = "eligible"
    EXCLUDED = "excluded"


class ExclusionReason(Enum):
    NON_USB_TRANSPORT = "non-usb-transport"
    NOT_REMOVABLE = "not-removable"
    SYSTEM_MOUNTPOINT = "system-mountpoint-detected"


@dataclass(frozen=True)
class SafetyVerdict:
    device: BlockDevice
    outcome: Verdict
    reason: ExclusionReason | None = None

    @property
    def eligible(self) -> bool:
        return self.outcome is Verdict.ELIGIBLE


# ==============================================================================
# Image Domain
# ==============================================================================


class ImageType(Enum):
    ISO9660 = "iso9660"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ImageSpec:
    """A verified source image ready to be written."""

    path: Path
    size_bytes: int
    image_type: ImageType
    readable: bool = True
    type_description: str = ""

    @property
    def is_iso(self) -> bool:
        return self.image_type is ImageType.ISO9660


# ==============================================================================
# Write Job Domain
# ==============================================================================


class Backend(Enum):
    """Write strategy used to put an image on the device."""

    RAW_COPY = "raw-copy"  # dd
    WINDOWS_INSTALLER = "windows-installer"  # woeusb / woeusb-ng
    MULTIBOOT_INSTALLER = "multiboot-installer"  # ventoy


class MediaType(Enum):
    """Media type offered in the operator menu."""

    LINUX = "1"
    WINDOWS = "2"
    MULTIBOOT = "3"
    CUSTOM = "4"

    @property
    def backend(self) -> Backend:
        return _MEDIA_BACKENDS[self]

    @property
    def label(self) -> str:
        return _MEDIA_LABELS[self]

    @property
    def requires_image(self) -> bool:
        return self is not MediaType.MULTIBOOT


_MEDIA_BACKENDS = {
    MediaType.LINUX: Backend.RAW_COPY,
    MediaType.WINDOWS: Backend.WINDOWS_INSTALLER,
    MediaType.MULTIBOOT: Backend.MULTIBOOT_INSTALLER,
    MediaType.CUSTOM: Backend.RAW_COPY,
}

_MEDIA_LABELS = {
    MediaType.LINUX: "Linux",
    MediaType.WINDOWS: "Windows",
    MediaType.MULTIBOOT: "Ventoy",
    MediaType.CUSTOM: "Custom image",
}


class JobState(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class BackendResult:
    """Outcome of one backend process invocation."""

    exit_code: int
    combined_output: str
    success: bool


@dataclass
class WriteJob:
    """One write attempt.

    Only ``state`` and ``failure_detail`` change after creation, and only
    once, through :meth:`succeed` or :meth:`fail`.
    """

    device: BlockDevice
    image: Optional[ImageSpec]
    backend: Backend
    media_type: MediaType
    job_id: str
    state: JobState = JobState.PENDING
    failure_detail: str | None = None
    result: BackendResult | None = field(default=None, repr=False)

    def succeed(self, result: BackendResult | None = None) -> None:
        self._transition(JobState.SUCCESS)
        self.result = result

    def fail(self, detail: str, result: BackendResult | None = None) -> None:
        self._transition(JobState.FAILURE)
        self.failure_detail = detail
        self.result = result

    def _transition(self, state: JobState) -> None:
        # Imported here to keep the domain package free of storage imports at load.
        from oswriter.storage.exceptions import JobStateError

        if self.state is not JobState.PENDING:
            raise JobStateError(self.job_id, self.state.value, state.value)
        self.state = state

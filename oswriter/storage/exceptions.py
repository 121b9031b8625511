"""Custom exceptions for the bootable media workflow.

Exception Hierarchy:
    OsWriterError (base)
        ├── DeviceError
        │   ├── DeviceQueryError
        │   ├── DeviceNotFoundError
        │   ├── DeviceChangedError
        │   └── NoEligibleDeviceError
        ├── SelectionCancelledError
        ├── ImageError
        │   ├── ImageNotFoundError
        │   ├── ImageUnreadableError
        │   └── ImageVerificationExhaustedError
        ├── WriteError
        │   ├── CapacityExceededError
        │   ├── BackendUnavailableError
        │   ├── BackendExecutionError
        │   └── JobStateError
        ├── MissingToolsError
        └── PrivilegeError

Usage:
    from oswriter.storage.exceptions import CapacityExceededError

    if image_size > device_size:
        raise CapacityExceededError(image_path, image_size, device_name, device_size)
"""

from typing import Optional


class OsWriterError(Exception):
    """Base exception for all workflow errors."""


class DeviceError(OsWriterError):
    """Base exception for device-related errors."""


class DeviceQueryError(DeviceError):
    """The system block device listing could not be obtained."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Unable to query block devices: {reason}")


class DeviceNotFoundError(DeviceError):
    """Device was not found or does not exist."""

    def __init__(self, device_name: str):
        self.device_name = device_name
        super().__init__(f"Device not found: {device_name}")


class DeviceChangedError(DeviceError):
    """The device behind a name is no longer the one the operator confirmed."""

    def __init__(self, device_name: str, reason: str):
        self.device_name = device_name
        self.reason = reason
        super().__init__(f"Device {device_name} changed since it was selected: {reason}")


class NoEligibleDeviceError(DeviceError):
    """No device passed the safety filter."""

    def __init__(self, candidate_count: int = 0):
        self.candidate_count = candidate_count
        super().__init__("No safe removable USB drives found.")


class SelectionCancelledError(OsWriterError):
    """Operator declined to continue. Not a failure."""

    def __init__(self, message: str = "Operation canceled by the user."):
        super().__init__(message)


class ImageError(OsWriterError):
    """Base exception for source image errors."""


class ImageNotFoundError(ImageError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"The file '{path}' does not exist.")


class ImageUnreadableError(ImageError):
    def __init__(self, path, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Cannot read the file '{path}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ImageVerificationExhaustedError(ImageError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No valid image provided after {attempts} attempts.")


class WriteError(OsWriterError):
    """Base exception for write job failures."""


class CapacityExceededError(WriteError):
    """Image will not fit on the target device."""

    def __init__(
        self,
        image_path,
        image_size: int,
        device_name: str,
        device_size: int,
    ):
        self.image_path = image_path
        self.image_size = image_size
        self.device_name = device_name
        self.device_size = device_size
        from .devices import human_size

        super().__init__(
            f"The image {image_path} ({human_size(image_size)}) is larger than "
            f"the USB drive {device_name} ({human_size(device_size)})."
        )


class BackendUnavailableError(WriteError):
    """The external tool a backend depends on is not installed."""

    def __init__(self, tool: str, hint: str = ""):
        self.tool = tool
        self.hint = hint
        msg = f"{tool} is not installed."
        if hint:
            msg += f" {hint}"
        super().__init__(msg)


class BackendExecutionError(WriteError):
    """A backend process ran but did not succeed."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        output: str = "",
    ):
        self.exit_code = exit_code
        self.output = output
        super().__init__(message)


class JobStateError(WriteError):
    """A write job was asked to leave a terminal state."""

    def __init__(self, job_id: str, current: str, requested: str):
        self.job_id = job_id
        super().__init__(
            f"Write job {job_id} is already {current}; cannot move to {requested}"
        )


class MissingToolsError(OsWriterError):
    """Required external tools are not on PATH."""

    def __init__(self, tools: list[str]):
        self.tools = tools
        super().__init__(f"Missing required dependencies: {', '.join(tools)}")


class PrivilegeError(OsWriterError):
    """The workflow was started without root privileges."""

    def __init__(self):
        super().__init__("This program needs superuser (root) privileges.")

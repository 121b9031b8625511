"""
Pytest configuration and shared fixtures for oswriter tests.

This module provides a fake command runner, a scripted console and lsblk
fixtures so no test touches real block devices or external tools.
"""

import io
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from oswriter.config import settings
from oswriter.domain import BlockDevice, ImageSpec, ImageType
from oswriter.storage.write.command_runners import CommandResult
from oswriter.ui.console import Console


# ==============================================================================
# Fakes
# ==============================================================================


class FakeRunner:
    """CommandRunner returning canned results keyed by executable name.

    ``responses`` maps a program name (``lsblk``, ``dd``...) to a
    CommandResult, or to a callable taking the command tuple.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        available: Optional[List[str]] = None,
        stream_lines: Optional[List[str]] = None,
    ):
        self.responses = dict(responses or {})
        self.available = set(
            available
            if available is not None
            else ["lsblk", "dd", "file", "sync", "woeusb", "ventoy"]
        )
        self.stream_lines = list(stream_lines or [])
        self.calls: List[tuple] = []

    def _respond(self, command) -> CommandResult:
        command = tuple(command)
        self.calls.append(command)
        response = self.responses.get(command[0])
        if callable(response):
            return response(command)
        if response is None:
            return CommandResult(command, 0, "", "")
        return CommandResult(
            command, response.returncode, response.stdout, response.stderr
        )

    def run(self, command, *, merge_stderr=False) -> CommandResult:
        return self._respond(command)

    def stream(self, command, on_line: Optional[Callable[[str], None]] = None):
        result = self._respond(command)
        for line in self.stream_lines:
            if on_line:
                on_line(line)
        return result

    def run_interactive(self, command) -> CommandResult:
        return self._respond(command)

    def which(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.available else None

    def commands_for(self, program: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == program]


class FakeConsole(Console):
    """Console answering prompts from a script and recording output."""

    def __init__(self, answers: Optional[List[str]] = None):
        self.answers = list(answers or [])
        self.prompts: List[str] = []
        self.output = io.StringIO()
        super().__init__(input_func=self._next_answer, stream=self.output)

    def _next_answer(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    @property
    def text(self) -> str:
        return self.output.getvalue()


def lsblk_result(devices: List[Dict[str, Any]]) -> CommandResult:
    return CommandResult(
        ("lsblk",), 0, json.dumps({"blockdevices": devices}), ""
    )


def make_device(
    name: str = "sdb",
    size_bytes: int = 8 * 1024**3,
    transport: Optional[str] = "usb",
    removable: Optional[str] = "1",
    mountpoints=(),
    model: Optional[str] = "Cruzer Blade",
    vendor: Optional[str] = "SanDisk",
) -> BlockDevice:
    return BlockDevice(
        name=name,
        size_bytes=size_bytes,
        model=model,
        vendor=vendor,
        transport=transport,
        removable=removable,
        mountpoints=tuple(mountpoints),
    )


def write_sys_block(root: Path, flags: Dict[str, str]) -> Path:
    """Create a fake /sys/block tree with removable attributes."""
    for name, value in flags.items():
        (root / name).mkdir(parents=True, exist_ok=True)
        (root / name / "removable").write_text(f"{value}\n")
    return root


# ==============================================================================
# Device Fixtures
# ==============================================================================


@pytest.fixture
def usb_lsblk_row() -> Dict[str, Any]:
    """A typical USB stick as returned by lsblk -J -b."""
    return {
        "name": "sdb",
        "size": 8 * 1024**3,
        "model": "Cruzer Blade    ",
        "vendor": "SanDisk ",
        "tran": "usb",
        "hotplug": True,
        "rm": True,
        "type": "disk",
        "mountpoint": None,
        "children": [
            {
                "name": "sdb1",
                "size": 8 * 1024**3 - 1048576,
                "model": None,
                "vendor": None,
                "tran": None,
                "hotplug": True,
                "rm": True,
                "type": "part",
                "mountpoint": "/media/user/STICK",
            }
        ],
    }


@pytest.fixture
def system_lsblk_row() -> Dict[str, Any]:
    """An internal NVMe system disk."""
    return {
        "name": "nvme0n1",
        "size": 512 * 1024**3,
        "model": "Samsung SSD 980",
        "vendor": None,
        "tran": "nvme",
        "hotplug": False,
        "rm": False,
        "type": "disk",
        "mountpoint": None,
        "children": [
            {"name": "nvme0n1p1", "type": "part", "mountpoint": "/boot/efi"},
            {"name": "nvme0n1p2", "type": "part", "mountpoint": "/"},
        ],
    }


@pytest.fixture
def sys_block(tmp_path) -> Path:
    return write_sys_block(tmp_path / "sys" / "block", {"sdb": "1", "nvme0n1": "0"})


@pytest.fixture
def usb_device() -> BlockDevice:
    return make_device()


@pytest.fixture
def iso_file(tmp_path) -> Path:
    path = tmp_path / "debian.iso"
    path.write_bytes(b"\0" * 4096)
    return path


@pytest.fixture
def iso_image(iso_file) -> ImageSpec:
    return ImageSpec(
        path=iso_file,
        size_bytes=3 * 1024**3,
        image_type=ImageType.ISO9660,
        type_description="ISO 9660 CD-ROM filesystem data 'Debian 12' (bootable)",
    )


# ==============================================================================
# Settings
# ==============================================================================


@pytest.fixture(autouse=True)
def default_settings(monkeypatch, tmp_path):
    """Every test starts from default settings and never writes to $HOME."""
    monkeypatch.setattr(settings, "SETTINGS_PATH", tmp_path / "settings.json")
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)
    yield


# ==============================================================================
# Factories
# ==============================================================================


@pytest.fixture
def runner_factory():
    return FakeRunner


@pytest.fixture
def console_factory():
    return FakeConsole


@pytest.fixture
def device_factory():
    return make_device


@pytest.fixture
def lsblk_factory():
    return lsblk_result

"""Discovery of the external tools the workflow shells out to."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from oswriter.logging import LoggerFactory
from oswriter.storage.exceptions import MissingToolsError
from oswriter.storage.write.command_runners import CommandRunner, SubprocessRunner

REQUIRED_TOOLS = ("lsblk", "dd", "file")
WINDOWS_INSTALLERS = ("woeusb", "woeusb-ng")
MULTIBOOT_INSTALLER = "ventoy"

log = LoggerFactory.for_system()


@dataclass
class ToolReport:
    missing_required: List[str] = field(default_factory=list)
    windows_installer: Optional[str] = None
    multiboot_installer: Optional[str] = None

    @property
    def warnings(self) -> List[str]:
        messages = []
        if not self.multiboot_installer:
            messages.append(
                "Ventoy is not installed. Multi-boot installation will be unavailable."
            )
        if not self.windows_installer:
            messages.append(
                "WoeUSB is not installed. It may be needed to create Windows bootable USBs."
            )
        return messages


def find_windows_installer(runner: Optional[CommandRunner] = None) -> Optional[str]:
    """Return the name of the first available WoeUSB flavour."""
    runner = runner or SubprocessRunner()
    for name in WINDOWS_INSTALLERS:
        if runner.which(name):
            return name
    return None


def find_multiboot_installer(runner: Optional[CommandRunner] = None) -> Optional[str]:
    runner = runner or SubprocessRunner()
    return MULTIBOOT_INSTALLER if runner.which(MULTIBOOT_INSTALLER) else None


def check_tools(runner: Optional[CommandRunner] = None) -> ToolReport:
    """Check required and optional tools.

    Raises:
        MissingToolsError: If any required tool is missing
    """
    runner = runner or SubprocessRunner()
    report = ToolReport(
        missing_required=[name for name in REQUIRED_TOOLS if not runner.which(name)],
        windows_installer=find_windows_installer(runner),
        multiboot_installer=find_multiboot_installer(runner),
    )
    if report.missing_required:
        log.error(f"Missing required tools: {', '.join(report.missing_required)}")
        raise MissingToolsError(report.missing_required)
    for warning in report.warnings:
        log.info(warning)
    return report

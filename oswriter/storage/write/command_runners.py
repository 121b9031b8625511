"""Command execution abstraction.

Every external tool (lsblk, file, dd, woeusb, ventoy, sync) is invoked through
a :class:`CommandRunner`, so tests can substitute a fake that returns canned
output instead of touching real devices.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from oswriter.logging import get_logger


@dataclass(frozen=True)
class CommandResult:
    command: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def combined_output(self) -> str:
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr


class CommandRunner(Protocol):
    def run(self, command: Sequence[str], *, merge_stderr: bool = False) -> CommandResult:
        """Run a command to completion and capture its output."""

    def stream(
        self,
        command: Sequence[str],
        on_line: Optional[Callable[[str], None]] = None,
    ) -> CommandResult:
        """Run a command, feeding each stderr line to ``on_line`` as it arrives."""

    def run_interactive(self, command: Sequence[str]) -> CommandResult:
        """Run a command attached to the operator's terminal."""

    def which(self, name: str) -> Optional[str]:
        """Return the path of an executable or None."""


class SubprocessRunner:
    """CommandRunner backed by :mod:`subprocess`."""

    def __init__(self, log=None):
        self._log = log or get_logger(source="cmd", tags=["cmd"])

    def run(self, command: Sequence[str], *, merge_stderr: bool = False) -> CommandResult:
        command = tuple(command)
        self._log.debug(f"Running command: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as error:
            self._log.debug(f"Command not found: {command[0]}")
            return CommandResult(command, 127, "", str(error))
        if result.returncode != 0:
            self._log.debug(f"Command failed with code {result.returncode}")
            if result.stderr:
                self._log.debug(f"stderr: {result.stderr.strip()}")
        return CommandResult(
            command, result.returncode, result.stdout or "", result.stderr or ""
        )

    def stream(
        self,
        command: Sequence[str],
        on_line: Optional[Callable[[str], None]] = None,
    ) -> CommandResult:
        command = tuple(command)
        self._log.debug(f"Starting command: {' '.join(command)}")
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as error:
            return CommandResult(command, 127, "", str(error))
        stderr_lines = []
        with process:
            try:
                assert process.stderr is not None
                # dd rewrites its progress line with carriage returns.
                buffer = ""
                while True:
                    chunk = process.stderr.read(1)
                    if not chunk:
                        break
                    if chunk in ("\r", "\n"):
                        if buffer:
                            stderr_lines.append(buffer)
                            if on_line:
                                on_line(buffer)
                        buffer = ""
                        continue
                    buffer += chunk
                if buffer:
                    stderr_lines.append(buffer)
                    if on_line:
                        on_line(buffer)
                stdout_data = process.stdout.read() if process.stdout else ""
                process.wait()
            except BaseException:
                self._log.warning(f"Killing {command[0]} (pid {process.pid})")
                process.kill()
                process.wait()
                raise
        self._log.debug(f"Command completed with return code {process.returncode}")
        return CommandResult(
            command, process.returncode, stdout_data, "\n".join(stderr_lines)
        )

    def run_interactive(self, command: Sequence[str]) -> CommandResult:
        command = tuple(command)
        self._log.debug(f"Running interactive command: {' '.join(command)}")
        try:
            returncode = subprocess.call(command)
        except FileNotFoundError as error:
            return CommandResult(command, 127, "", str(error))
        self._log.debug(f"Command completed with return code {returncode}")
        return CommandResult(command, returncode)

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)


__all__ = ["CommandResult", "CommandRunner", "SubprocessRunner"]

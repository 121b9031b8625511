"""
Tests for oswriter.storage.write.backends module.

This test suite covers:
- Success derivation rules per backend
- Command construction for dd, WoeUSB and Ventoy
- Capacity checks and the near-capacity hint
- Backend execution through a fake runner
"""

import pytest

from oswriter.domain import ImageSpec, ImageType, MediaType
from oswriter.storage.exceptions import (
    BackendExecutionError,
    BackendUnavailableError,
    CapacityExceededError,
)
from oswriter.storage.write import backends
from oswriter.storage.write.command_runners import CommandResult
from oswriter.storage.write.dispatcher import create_job

GIB = 1024**3


@pytest.fixture
def big_image(iso_file):
    return ImageSpec(path=iso_file, size_bytes=16 * GIB, image_type=ImageType.ISO9660)


class TestSuccessDerivation:
    def test_raw_copy_uses_exit_code(self):
        assert backends.derive_raw_copy_success(0)
        assert not backends.derive_raw_copy_success(1)

    def test_windows_exit_zero_without_marker(self):
        assert backends.derive_windows_success(0, "Installation succeeded!")

    def test_windows_exit_zero_with_error_marker_fails(self):
        assert not backends.derive_windows_success(
            0, "Mounting...\nError: Target device is busy\nDone :)"
        )

    def test_windows_nonzero_fails(self):
        assert not backends.derive_windows_success(1, "")

    def test_multiboot_uses_exit_code(self):
        assert backends.derive_multiboot_success(0)
        assert not backends.derive_multiboot_success(2)


class TestCommandBuilders:
    def test_dd_command(self, iso_image, usb_device):
        assert backends.build_dd_command(iso_image, usb_device) == [
            "dd",
            f"if={iso_image.path}",
            "of=/dev/sdb",
            "bs=4M",
            "status=progress",
            "conv=fsync",
        ]

    def test_woeusb_command(self, iso_image, usb_device):
        command = backends.build_windows_command("woeusb", iso_image, usb_device)
        assert command == [
            "woeusb",
            "--target-filesystem",
            "NTFS",
            "--device",
            str(iso_image.path),
            "/dev/sdb",
        ]

    def test_woeusb_ng_command(self, iso_image, usb_device):
        command = backends.build_windows_command("woeusb-ng", iso_image, usb_device)
        assert command == [
            "woeusb-ng",
            "--target",
            "/dev/sdb",
            "--source",
            str(iso_image.path),
            "--target-filesystem",
            "ntfs",
        ]

    def test_multiboot_command(self, usb_device):
        assert backends.build_multiboot_command(usb_device) == ["ventoy", "-i", "/dev/sdb"]


class TestCapacity:
    def test_image_fits(self, iso_image, usb_device):
        backends.check_capacity(iso_image, usb_device)

    def test_image_too_large(self, big_image, usb_device):
        with pytest.raises(CapacityExceededError) as excinfo:
            backends.check_capacity(big_image, usb_device)

        assert excinfo.value.image_size == 16 * GIB
        assert excinfo.value.device_size == 8 * GIB

    def test_hint_above_ratio(self, iso_file, usb_device):
        image = ImageSpec(path=iso_file, size_bytes=int(7.5 * GIB), image_type=ImageType.ISO9660)

        hint = backends.capacity_hint(image, usb_device)

        assert "may be too large" in hint
        assert "8.0GB" in hint

    def test_no_hint_below_ratio(self, iso_image, usb_device):
        assert backends.capacity_hint(iso_image, usb_device) is None


class TestWriteRawImage:
    def test_streams_dd_then_syncs(self, runner_factory, console_factory, usb_device, iso_image):
        runner = runner_factory(
            stream_lines=["3221225472 bytes (3.2 GB, 3.0 GiB) copied, 30 s, 107 MB/s"]
        )
        console = console_factory()
        job = create_job(usb_device, iso_image, MediaType.LINUX)

        result = backends.write_raw_image(job, runner, console)

        assert result.success
        assert [call[0] for call in runner.calls] == ["dd", "sync"]
        assert runner.calls[0][1:3] == (f"if={iso_image.path}", "of=/dev/sdb")
        assert "Wrote 3.0GB of 3.0GB (100.0%)" in console.text
        assert "Copied 3.0GB" in console.text

    def test_no_copied_total_without_progress(self, runner_factory, console_factory, usb_device, iso_image):
        console = console_factory()
        job = create_job(usb_device, iso_image, MediaType.LINUX)

        backends.write_raw_image(job, runner_factory(), console)

        assert "Copied" not in console.text

    def test_uses_configured_block_size(self, runner_factory, console_factory, usb_device, iso_image):
        from oswriter.config import settings

        settings.settings_store.values["dd_block_size"] = "1M"
        runner = runner_factory()
        job = create_job(usb_device, iso_image, MediaType.CUSTOM)

        backends.write_raw_image(job, runner, console_factory())

        assert "bs=1M" in runner.commands_for("dd")[0]

    def test_dd_failure_raises_without_sync(self, runner_factory, console_factory, usb_device, iso_image):
        runner = runner_factory(
            {"dd": CommandResult(("dd",), 1, "", "dd: error writing '/dev/sdb': No space left on device")}
        )
        job = create_job(usb_device, iso_image, MediaType.LINUX)

        with pytest.raises(BackendExecutionError, match="No space left") as excinfo:
            backends.write_raw_image(job, runner, console_factory())

        assert excinfo.value.exit_code == 1
        assert runner.commands_for("sync") == []

    def test_missing_dd(self, runner_factory, console_factory, usb_device, iso_image):
        runner = runner_factory(available=[])
        job = create_job(usb_device, iso_image, MediaType.LINUX)

        with pytest.raises(BackendUnavailableError):
            backends.write_raw_image(job, runner, console_factory())
        assert runner.calls == []


class TestWriteWindowsImage:
    def test_success(self, runner_factory, console_factory, usb_device, iso_image):
        runner = runner_factory({"woeusb": CommandResult(("woeusb",), 0, "Installation succeeded!", "")})
        console = console_factory()
        job = create_job(usb_device, iso_image, MediaType.WINDOWS)

        result = backends.write_windows_image(job, runner, console, "woeusb")

        assert result.success
        assert "Installation succeeded!" in console.text
        assert [call[0] for call in runner.calls] == ["woeusb", "sync"]

    def test_error_marker_with_exit_zero_fails(self, runner_factory, console_factory, usb_device, iso_image):
        runner = runner_factory(
            {"woeusb": CommandResult(("woeusb",), 0, "Error: Unable to mount the target filesystem", "")}
        )
        job = create_job(usb_device, iso_image, MediaType.WINDOWS)

        with pytest.raises(BackendExecutionError, match="despite exiting with code 0") as excinfo:
            backends.write_windows_image(job, runner, console_factory(), "woeusb")

        assert excinfo.value.exit_code == 0
        assert "Unable to mount" in excinfo.value.output

    def test_failure_near_capacity_adds_hint(self, runner_factory, console_factory, usb_device, iso_file):
        image = ImageSpec(path=iso_file, size_bytes=int(7.8 * GIB), image_type=ImageType.ISO9660)
        runner = runner_factory({"woeusb-ng": CommandResult(("woeusb-ng",), 1, "", "")})
        job = create_job(usb_device, image, MediaType.WINDOWS)

        with pytest.raises(BackendExecutionError, match="may be too large"):
            backends.write_windows_image(job, runner, console_factory(), "woeusb-ng")

    def test_missing_installer(self, runner_factory, console_factory, usb_device, iso_image):
        runner = runner_factory()
        job = create_job(usb_device, iso_image, MediaType.WINDOWS)

        with pytest.raises(BackendUnavailableError, match="apt install woeusb"):
            backends.write_windows_image(job, runner, console_factory(), None)
        assert runner.calls == []


class TestInstallMultiboot:
    def test_runs_ventoy_interactively(self, runner_factory, console_factory, usb_device):
        runner = runner_factory()
        job = create_job(usb_device, None, MediaType.MULTIBOOT)

        result = backends.install_multiboot(job, runner, console_factory())

        assert result.success
        assert runner.calls == [("ventoy", "-i", "/dev/sdb")]

    def test_nonzero_exit_fails(self, runner_factory, console_factory, usb_device):
        runner = runner_factory({"ventoy": CommandResult(("ventoy",), 1, "", "")})
        job = create_job(usb_device, None, MediaType.MULTIBOOT)

        with pytest.raises(BackendExecutionError):
            backends.install_multiboot(job, runner, console_factory())

    def test_missing_ventoy(self, runner_factory, console_factory, usb_device):
        runner = runner_factory(available=["lsblk", "dd", "file"])
        job = create_job(usb_device, None, MediaType.MULTIBOOT)

        with pytest.raises(BackendUnavailableError, match="ventoy.net"):
            backends.install_multiboot(job, runner, console_factory())

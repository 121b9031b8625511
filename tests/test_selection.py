"""Tests for operator drive selection."""

import pytest

from oswriter.app.selection import parse_index, select_device
from oswriter.config import settings
from oswriter.storage.exceptions import NoEligibleDeviceError, SelectionCancelledError


@pytest.fixture
def three_devices(device_factory):
    return [
        device_factory(name="sdb", model="Cruzer Blade"),
        device_factory(name="sdc", size_bytes=16 * 1024**3, model="DataTraveler"),
        device_factory(name="sdd", size_bytes=32 * 1024**3, model=None),
    ]


class TestParseIndex:
    @pytest.mark.parametrize("answer", ["", "abc", "-1", "1.0", "3", " 1", "²", "١"])
    def test_rejects_invalid_answers(self, answer):
        assert parse_index(answer, 3) is None

    def test_accepts_in_range(self):
        assert parse_index("0", 3) == 0
        assert parse_index("2", 3) == 2


class TestSingleDevice:
    """One eligible drive needs a plain y/n."""

    def test_yes_selects_device(self, console_factory, usb_device):
        console = console_factory(["y"])

        assert select_device([usb_device], console) is usb_device
        assert "USB drive detected: /dev/sdb" in console.text
        assert "- Size: 8.0GB" in console.text
        assert "- Model: Cruzer Blade" in console.text
        assert console.prompts == ["Do you want to use this drive? (y/n): "]

    def test_uppercase_yes_selects_device(self, console_factory, usb_device):
        assert select_device([usb_device], console_factory(["Y"])) is usb_device

    @pytest.mark.parametrize("answer", ["n", "", "yes", "no"])
    def test_anything_else_cancels(self, console_factory, usb_device, answer):
        with pytest.raises(SelectionCancelledError):
            select_device([usb_device], console_factory([answer]))

    def test_end_of_input_cancels(self, console_factory, usb_device):
        with pytest.raises(SelectionCancelledError):
            select_device([usb_device], console_factory([]))


class TestMultipleDevices:
    """Several drives need an index and then the confirmation token."""

    def test_lists_devices_in_order(self, console_factory, three_devices):
        console = console_factory(["1", "CONFIRM"])

        selected = select_device(three_devices, console)

        assert selected.name == "sdc"
        assert "[0] /dev/sdb (8.0GB Cruzer Blade)" in console.text
        assert "[1] /dev/sdc (16.0GB DataTraveler)" in console.text
        assert "[2] /dev/sdd (32.0GB)" in console.text
        assert "ATTENTION: All data on this drive will be erased." in console.text

    def test_out_of_range_index_reprompts(self, console_factory, three_devices):
        console = console_factory(["7", "x", "2", "CONFIRM"])

        assert select_device(three_devices, console).name == "sdd"
        assert console.text.count("Invalid selection. Please try again.") == 2

    def test_non_ascii_digit_reprompts(self, console_factory, three_devices):
        console = console_factory(["²", "1", "CONFIRM"])

        assert select_device(three_devices, console).name == "sdc"
        assert "Invalid selection. Please try again." in console.text

    @pytest.mark.parametrize("token", ["confirm", "y", "", "CONFIRM!"])
    def test_wrong_token_cancels(self, console_factory, three_devices, token):
        with pytest.raises(SelectionCancelledError):
            select_device(three_devices, console_factory(["0", token]))

    def test_token_prompt_names_token(self, console_factory, three_devices):
        console = console_factory(["0", "CONFIRM"])

        select_device(three_devices, console)

        assert console.prompts[-1] == (
            "Are you SURE you want to continue? (type 'CONFIRM' to proceed): "
        )

    def test_custom_token_from_settings(self, console_factory, three_devices):
        settings.settings_store.values["confirm_token"] = "ERASE"

        console = console_factory(["0", "ERASE"])

        assert select_device(three_devices, console).name == "sdb"

    def test_explicit_token_argument(self, console_factory, three_devices):
        console = console_factory(["0", "WIPE"])

        assert select_device(three_devices, console, confirm_token="WIPE").name == "sdb"

    def test_max_attempts_bounds_reprompting(self, console_factory, three_devices):
        console = console_factory(["9", "9", "0"])

        with pytest.raises(SelectionCancelledError, match="2 attempts"):
            select_device(three_devices, console, max_attempts=2)


class TestNoDevices:
    def test_empty_list_raises(self, console_factory):
        console = console_factory()

        with pytest.raises(NoEligibleDeviceError):
            select_device([], console)
        assert console.prompts == []

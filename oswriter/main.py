import argparse
import os
import sys
from pathlib import Path

from oswriter import __version__
from oswriter.app.context import EXIT_FAILURE, EXIT_OK
from oswriter.app.workflow import run_workflow
from oswriter.logging import LoggerFactory, setup_logging
from oswriter.menu import MAIN_MENU, choose
from oswriter.menu.definitions import CHECK_UPDATES_KEY, EXIT_KEY
from oswriter.services.tools import check_tools
from oswriter.storage.exceptions import (
    MissingToolsError,
    PrivilegeError,
    SelectionCancelledError,
)
from oswriter.storage.write.command_runners import SubprocessRunner
from oswriter.ui.console import Console


def show_header(console):
    console.info("===== BOOTABLE USB CREATOR =====")
    console.info("This program will help you create a bootable USB drive")
    console.info("for different operating systems.")
    console.info(f"Version: {__version__}")
    console.show("")


def check_root(geteuid=os.geteuid):
    if geteuid() != 0:
        raise PrivilegeError()


def build_parser():
    parser = argparse.ArgumentParser(
        prog="oswriter", description="Create bootable USB drives from the terminal"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("-t", "--trace", action="store_true", help="Enable trace output (very verbose)")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None, console=None, runner=None, geteuid=os.geteuid):
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log = LoggerFactory.for_system()
    console = console or Console()
    runner = runner or SubprocessRunner()

    show_header(console)
    try:
        check_root(geteuid)
        report = check_tools(runner)
    except PrivilegeError as error:
        console.error(str(error))
        console.warning(f"Please run it with sudo: sudo {Path(sys.argv[0]).name}")
        return EXIT_FAILURE
    except MissingToolsError as error:
        console.error("ERROR: Missing required dependencies:")
        for tool in error.tools:
            console.error(f"- {tool}")
        console.warning("Please install them before continuing.")
        return EXIT_FAILURE
    for warning in report.warnings:
        console.warning(warning)

    try:
        choice = choose(console, MAIN_MENU)
    except SelectionCancelledError as error:
        console.warning(str(error))
        return EXIT_OK
    if choice == EXIT_KEY:
        console.success("Exiting. Goodbye!")
        return EXIT_OK
    if choice == CHECK_UPDATES_KEY:
        console.info("Updates are managed by your package manager or installer.")
        console.info(f"Installed version: {__version__}")
        return EXIT_OK

    log.info("Starting create-bootable-media workflow")
    context = run_workflow(console, runner, windows_installer=report.windows_installer)
    log.info(f"Workflow finished with exit code {context.exit_code}")
    return context.exit_code


if __name__ == "__main__":
    sys.exit(main())

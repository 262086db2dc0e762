#!/usr/bin/env python3
"""Android TV launcher for Waydroid.

Run as a normal user (no sudo). Starts the Waydroid session when needed,
waits for Android to report ``sys.boot_completed=1`` and then hands the
terminal over to ``waydroid show-full-ui``.
"""

import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import click
from .core.config import Config
from .core.errors import BootTimeoutError, LauncherError, PrivilegeError, SessionDiedError
from .core.logger import logger, print_error, setup_logging
from .core.utils import is_root
from .runtime.inspector import RuntimeInspector, WaydroidInspector


BOOT_COMPLETED_PROP = "sys.boot_completed"

TROUBLESHOOTING = "Run:  waydroid log\nand:  waydroid status\nto see why the container isn't booting."


class BootState(Enum):
    SESSION_ABSENT = "session_absent"
    SESSION_STARTING = "session_starting"
    BOOT_POLLING = "boot_polling"
    BOOTED = "booted"
    TIMED_OUT = "timed_out"
    SESSION_DIED = "session_died"


@dataclass
class BootResult:
    state: BootState
    polls: int


class BootWaiter:
    """Start-then-poll state machine for a Waydroid session.

    ``polls`` counts boot-property queries. While the session is not yet
    reported as RUNNING, the first ``grace`` iterations are tolerated.
    """

    def __init__(self, inspector: RuntimeInspector, timeout: int = 60, grace: int = 10,
                 poll_interval: float = 1.0, settle_delay: float = 2.0,
                 sleep: Optional[Callable[[float], None]] = None):
        self.inspector = inspector
        self.timeout = timeout
        self.grace = grace
        self.poll_interval = poll_interval
        self.settle_delay = settle_delay
        self.sleep = sleep or time.sleep
        self.state = BootState.SESSION_ABSENT

    def ensure_session(self):
        if self.inspector.is_running():
            logger.info("Reusing running Waydroid session...")
            return

        logger.info("Session is not running. Starting in background...")
        self.inspector.start_session()
        self.state = BootState.SESSION_STARTING
        self.sleep(self.settle_delay)

    def wait(self) -> BootResult:
        self.ensure_session()

        logger.info(f"Waiting for Android TV to boot ({BOOT_COMPLETED_PROP})...")
        self.state = BootState.BOOT_POLLING
        polls = 0

        for iteration in range(1, self.timeout + 1):
            if not self.inspector.is_running() and iteration > self.grace:
                self.state = BootState.SESSION_DIED
                return BootResult(self.state, polls)

            value = self.inspector.get_property(BOOT_COMPLETED_PROP)
            polls += 1
            if value == "1":
                self.state = BootState.BOOTED
                return BootResult(self.state, polls)

            self.sleep(self.poll_interval)

        self.state = BootState.TIMED_OUT
        return BootResult(self.state, polls)

    def run(self) -> BootResult:
        """Wait for boot and launch the full UI, or raise a LauncherError"""
        result = self.wait()

        if result.state is BootState.SESSION_DIED:
            raise SessionDiedError(
                "Waydroid session failed to stay running.\n"
                "Check 'waydroid log' and 'waydroid status' for details."
            )
        if result.state is BootState.TIMED_OUT:
            raise BootTimeoutError(
                f"Android TV did not report {BOOT_COMPLETED_PROP}=1 within "
                f"{self.timeout} seconds.\n{TROUBLESHOOTING}"
            )

        logger.info("Android TV booted. Launching full UI...")
        self.inspector.show_ui()
        return result


def build_waiter(config: Config, inspector: RuntimeInspector) -> BootWaiter:
    return BootWaiter(
        inspector,
        timeout=int(config.get("launcher.boot_timeout")),
        grace=int(config.get("launcher.grace_iterations")),
        poll_interval=float(config.get("launcher.poll_interval")),
        settle_delay=float(config.get("launcher.settle_delay")),
    )


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
def main(verbose):
    """Start Waydroid and open the Android TV UI once it has booted"""
    setup_logging(verbose)

    try:
        if is_root():
            raise PrivilegeError("Please run waydroid-atv-launch as a normal user, not root.")

        logger.info("Starting or reusing Waydroid session...")
        build_waiter(Config(), WaydroidInspector()).run()
    except (LauncherError, PrivilegeError) as e:
        print_error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()

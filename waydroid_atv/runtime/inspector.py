"""Observing and driving a user's Waydroid session"""

import os
import subprocess
from typing import Optional, Protocol
from ..core.errors import LauncherError
from ..core.logger import logger
from ..core.utils import run_command


class RuntimeInspector(Protocol):
    """What the boot-wait loop needs from the container runtime"""

    def is_running(self) -> bool: ...

    def get_property(self, name: str) -> Optional[str]: ...

    def start_session(self) -> None: ...

    def show_ui(self) -> None: ...


class WaydroidInspector:
    """RuntimeInspector backed by the waydroid CLI"""

    def __init__(self, binary: str = "waydroid"):
        self.binary = binary

    def _unavailable(self, action: str, error: OSError) -> LauncherError:
        return LauncherError(
            f"Cannot {action}: failed to run '{self.binary}' ({error}).\n"
            "Is Waydroid installed? Check 'waydroid status' and 'waydroid log'."
        )

    def is_running(self) -> bool:
        ret, out, _ = run_command([self.binary, "status"], timeout=15)
        return ret == 0 and "RUNNING" in out

    def get_property(self, name: str) -> Optional[str]:
        ret, out, _ = run_command([self.binary, "prop", "get", name], timeout=15)
        if ret != 0:
            return None
        return out.strip()

    def start_session(self):
        """Start ``waydroid session start`` detached; it is polled, not awaited"""
        logger.debug("Spawning waydroid session start")
        try:
            subprocess.Popen(
                [self.binary, "session", "start"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise self._unavailable("start the Waydroid session", e) from e

    def show_ui(self):
        """Replace this process with ``waydroid show-full-ui``"""
        try:
            os.execvp(self.binary, [self.binary, "show-full-ui"])
        except OSError as e:
            raise self._unavailable("launch the Android TV UI", e) from e

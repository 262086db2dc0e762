"""Launcher executable and desktop entry"""

import sys
from pathlib import Path
from typing import Tuple, Union
from ..core.config import Config
from ..core.logger import logger
from ..core.utils import atomic_write


# Identifies wrappers this installer wrote, as opposed to a pip console script
LAUNCHER_MARKER = "# Written by waydroid-atv-installer"

LAUNCHER_TEMPLATE = """#!{python}
""" + LAUNCHER_MARKER + """
# Android TV launcher for Waydroid
# Usage: run as normal user (NO sudo)
import sys

from waydroid_atv.launcher import main

sys.exit(main())
"""

DESKTOP_ENTRY = """[Desktop Entry]
Type=Application
Name=Android TV (Waydroid)
Comment=Launch Android TV environment in Waydroid
Exec={exec_name}
Icon=waydroid
Terminal=false
Categories=System;Utility;
"""


def is_managed_launcher(path: Union[str, Path]) -> bool:
    """True when ``path`` holds a wrapper written by LauncherWriter"""
    path = Path(path)
    if not path.is_file():
        return False
    return LAUNCHER_MARKER in path.read_text(errors="replace")


class LauncherWriter:
    """Write the CLI launcher and its desktop entry, overwriting earlier copies"""

    def __init__(self, config: Config, python: str = sys.executable):
        self.launcher_path = Path(config.get("launcher.path"))
        self.desktop_file = Path(config.get("launcher.desktop_file"))
        self.python = python

    def render_launcher(self) -> str:
        return LAUNCHER_TEMPLATE.format(python=self.python)

    def render_desktop_entry(self) -> str:
        return DESKTOP_ENTRY.format(exec_name=self.launcher_path.name)

    def write(self) -> Tuple[Path, Path]:
        if self.launcher_path.exists() and not is_managed_launcher(self.launcher_path):
            # Most likely the console script from a system-wide pip install
            logger.info(f"{self.launcher_path} is provided by the installed package, leaving it")
        else:
            logger.info(f"Creating CLI launcher: {self.launcher_path}")
            atomic_write(self.launcher_path, self.render_launcher(), mode=0o755)

        logger.info(f"Creating desktop launcher: {self.desktop_file}")
        atomic_write(self.desktop_file, self.render_desktop_entry(), mode=0o644)

        logger.info("Launchers created.")
        return self.launcher_path, self.desktop_file

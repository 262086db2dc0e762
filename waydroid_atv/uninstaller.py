"""Remove Waydroid, the Android TV image and everything the installer wrote"""

import glob
from pathlib import Path
from typing import Iterable, List, Optional
from .core.config import Config
from .core.logger import console, logger
from .core.system import SystemProfile
from .core.utils import remove_path, run_command
from .runtime.waydroid import WaydroidRuntime
from .system.boot_params import BootParameterEditor
from .system.desktop import is_managed_launcher
from .system.package_manager import PackageManager


DESKTOP_PATTERNS = ("waydroid*.desktop", "*Waydroid*.desktop", "*waydroid*.desktop")


def matching_desktop_files(directory: Path, patterns: Iterable[str] = DESKTOP_PATTERNS) -> List[Path]:
    matches = set()
    for pattern in patterns:
        matches.update(directory.glob(pattern))
    return sorted(matches)


class Uninstaller:
    """Best-effort teardown. Nothing in here is allowed to fail the run"""

    def __init__(self, config: Config, runtime: Optional[WaydroidRuntime] = None,
                 package_manager: Optional[PackageManager] = None,
                 editor: Optional[BootParameterEditor] = None):
        self.config = config
        self.runtime = runtime or WaydroidRuntime(config.get("system.proc_devices"))
        self.package_manager = package_manager or PackageManager(config)
        self.editor = editor or BootParameterEditor(config)

    def purge_package(self):
        logger.info("Purging waydroid package (if installed)...")
        if self.runtime.is_installed():
            self.package_manager.purge("waydroid")
        else:
            logger.info("Waydroid binary not found, skipping package purge.")

    def remove_data(self):
        logger.info("Removing Waydroid data, configs, and images...")
        for directory in self.config.get("uninstall.remove_dirs"):
            if remove_path(directory):
                logger.debug(f"Removed {directory}")

    def remove_repo(self):
        logger.info("Removing Waydroid APT repo + keyring (if present)...")
        remove_path(self.config.get("apt.list_file"))
        remove_path(self.config.get("apt.keyring"))

    def user_application_dirs(self) -> List[Path]:
        dirs = []
        for home_glob in self.config.get("uninstall.home_globs"):
            for home in sorted(glob.glob(home_glob)):
                applications = Path(home) / ".local" / "share" / "applications"
                if applications.is_dir():
                    dirs.append(applications)
        return dirs

    def remove_launchers(self):
        launcher_path = self.config.get("launcher.path")
        if is_managed_launcher(launcher_path):
            logger.info("Removing Android TV launcher script...")
            remove_path(launcher_path)
        else:
            logger.info(f"No installer-written launcher at {launcher_path}, leaving it.")

        applications_dir = Path(self.config.get("uninstall.applications_dir"))
        logger.info("Removing system-wide desktop entries...")
        for entry in matching_desktop_files(applications_dir):
            remove_path(entry)

        logger.info("Removing user-level Waydroid desktop entries (all users)...")
        for directory in self.user_application_dirs():
            for entry in matching_desktop_files(directory):
                remove_path(entry)

        logger.info("Refreshing desktop database (if available)...")
        run_command(["update-desktop-database", str(applications_dir)], timeout=60)

    def strip_boot_flags(self):
        logger.info("Cleaning Raspberry Pi boot flags (psi/cgroup)...")
        self.editor.strip_runtime_flags()

    def run(self, profile: SystemProfile) -> int:
        console.print("\n[red]▶▶▶ UNINSTALLING WAYDROID + ATV ◀◀◀[/red]")
        console.print("[cyan]" + "═" * 60 + "[/cyan]")

        steps = [
            self.runtime.disable_service,
            self.runtime.clean_runtime,
            self.purge_package,
            self.remove_data,
            self.remove_repo,
            self.remove_launchers,
        ]
        if profile.is_raspberry_pi:
            steps.append(self.strip_boot_flags)

        for step in steps:
            try:
                step()
            except (OSError, ValueError) as e:
                logger.warning(f"{step.__name__} incomplete: {e}")

        logger.info("Final cleanup: you may optionally run: sudo apt autoremove -y")
        logger.info("The Pi 5 4K kernel switch in config.txt is not reverted.")
        console.print("\n[green]==================== UNINSTALL COMPLETE ====================[/green]")
        return 0

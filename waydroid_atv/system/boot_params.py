"""Kernel command line and firmware config.txt edits"""

from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from ..core.config import Config
from ..core.logger import logger
from ..core.system import SystemProfile


# Flags Waydroid needs on Raspberry Pi kernels, in the order they are appended
RUNTIME_FLAGS = ("psi=1", "cgroup_enable=cpuset", "cgroup_memory=1", "cgroup_enable=memory")

PI5_4K_KERNEL_STANZA = "\n[pi5]\nkernel=kernel8.img\n"

# Boot files are not guaranteed to be UTF-8; unknown bytes pass through unchanged
BOOT_FILE_ERRORS = "surrogateescape"


def add_cmdline_flags(line: str, flags: Iterable[str] = RUNTIME_FLAGS) -> Tuple[str, bool]:
    """Append every flag that is not already a token of ``line``.

    Existing tokens and spacing are left untouched. Returns the new line and
    whether anything was added.
    """
    line = line.rstrip("\r\n")
    tokens = line.split()
    missing = [flag for flag in flags if flag not in tokens]
    if not missing:
        return line, False

    base = line.rstrip()
    new_line = " ".join(missing) if not base else f"{base} {' '.join(missing)}"
    return new_line, True


def remove_cmdline_flags(line: str, flags: Iterable[str] = RUNTIME_FLAGS) -> str:
    """Drop every token equal to one of ``flags``, keeping the rest in order"""
    flags = set(flags)
    return " ".join(token for token in line.split() if token not in flags)


def first_existing(candidates: Iterable[str]) -> Optional[Path]:
    for candidate in candidates:
        path = Path(candidate)
        if path.is_file():
            return path
    return None


class BootParameterEditor:
    """Idempotent edits of the boot files used by install and uninstall"""

    def __init__(self, config: Config):
        self.config = config
        self.cmdline_candidates: List[str] = config.get("boot.cmdline_candidates")
        self.config_candidates: List[str] = config.get("boot.config_candidates")
        self.pressure_path = Path(config.get("boot.pressure_path"))

    def find_cmdline_file(self) -> Optional[Path]:
        return first_existing(self.cmdline_candidates)

    def find_boot_config(self) -> Optional[Path]:
        return first_existing(self.config_candidates)

    def apply_runtime_flags(self, profile: SystemProfile) -> bool:
        """Make sure psi/cgroup flags are on the kernel command line.

        Returns True when the cmdline file was changed and a reboot is
        recommended. Non-Pi hosts are only checked for PSI support.
        """
        if not profile.is_raspberry_pi:
            if not self.pressure_path.exists():
                logger.warning(
                    f"{self.pressure_path} is missing. On some systems you must "
                    "enable psi=1 in your bootloader manually."
                )
            return False

        cmdline_file = self.find_cmdline_file()
        if cmdline_file is None:
            logger.warning("No cmdline.txt found to add psi/cgroup flags. "
                           "You may need to do this manually.")
            return False

        original = cmdline_file.read_text(errors=BOOT_FILE_ERRORS)
        new_line, changed = add_cmdline_flags(original.strip("\r\n"))

        if not changed:
            logger.info(f"psi/cgroup flags already present in {cmdline_file}")
            return False

        logger.info(f"Updating {cmdline_file} with psi/cgroup flags...")
        cmdline_file.write_text(new_line + "\n", errors=BOOT_FILE_ERRORS)
        return True

    def strip_runtime_flags(self) -> bool:
        """Remove the psi/cgroup flags again. Returns True if a file was rewritten"""
        cmdline_file = self.find_cmdline_file()
        if cmdline_file is None:
            logger.info("No cmdline.txt found for boot flag cleanup.")
            return False

        content = cmdline_file.read_text(errors=BOOT_FILE_ERRORS)
        cmdline_file.write_text(remove_cmdline_flags(content) + "\n", errors=BOOT_FILE_ERRORS)
        logger.info(f"Removed psi/cgroup flags from {cmdline_file}. Reboot recommended.")
        return True

    def enable_4k_kernel(self, boot_config: Path) -> bool:
        """Select the 4K page-size kernel8.img on Pi 5.

        Returns False without touching the file when the stanza is already
        there, which happens when the installer is re-run before rebooting.
        """
        content = boot_config.read_text(errors=BOOT_FILE_ERRORS)
        if PI5_4K_KERNEL_STANZA.strip() in content:
            logger.info(f"[pi5]/kernel=kernel8.img already present in {boot_config}")
            return False

        with open(boot_config, "a") as f:
            f.write(PI5_4K_KERNEL_STANZA)

        logger.info(f"Enabled 4K kernel via [pi5]/kernel=kernel8.img in {boot_config}")
        return True

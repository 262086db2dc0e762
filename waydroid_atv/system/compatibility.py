"""Decide whether this host can run Waydroid before anything is installed"""

from enum import Enum
from typing import Callable
from ..core.errors import IncompatibleSystemError
from ..core.logger import logger
from ..core.system import Architecture, SystemProfile
from ..ui.prompts import KernelChoice, ask_kernel_switch
from .boot_params import BootParameterEditor


REQUIRED_PAGE_SIZE = 4096
PI5_16K_PAGE_SIZE = 16384


class GateOutcome(Enum):
    PROCEED = "proceed"
    # The 4K kernel was selected; nothing else may run until the host reboots
    REBOOT_REQUIRED = "reboot_required"


class CompatibilityGate:
    """Ordered checks on a SystemProfile.

    Fatal conditions raise IncompatibleSystemError. The only mutation is the
    Pi 5 kernel switch, and only when the operator picks it.
    """

    def __init__(self, editor: BootParameterEditor,
                 decide: Callable[[], KernelChoice] = ask_kernel_switch):
        self.editor = editor
        self.decide = decide

    def evaluate(self, profile: SystemProfile, apt_available: bool) -> GateOutcome:
        if not apt_available:
            raise IncompatibleSystemError(
                "This installer currently supports only APT-based systems "
                "(Debian/Ubuntu/RPi OS and derivatives). "
                "Detected non-APT system. Aborting."
            )

        if profile.architecture is Architecture.OTHER:
            raise IncompatibleSystemError(
                f"Unsupported arch: {profile.machine or 'unknown'} "
                "(supported: arm64/aarch64, x86_64)"
            )

        if profile.is_raspberry_pi5 and profile.page_size == PI5_16K_PAGE_SIZE:
            return self._offer_kernel_switch()

        if not profile.is_raspberry_pi and profile.page_size != REQUIRED_PAGE_SIZE:
            raise IncompatibleSystemError(
                f"Non-4K kernel page size ({profile.page_size}) detected on a non-RPi system. "
                "Waydroid generally expects a 4K PageSize kernel. Please move to a 4K kernel."
            )

        return GateOutcome.PROCEED

    def _offer_kernel_switch(self) -> GateOutcome:
        logger.info("Raspberry Pi 5 with 16K PageSize kernel detected.")

        boot_config = self.editor.find_boot_config()
        if boot_config is None:
            candidates = " or ".join(self.editor.config_candidates)
            raise IncompatibleSystemError(f"Cannot find {candidates} to switch kernel.")

        if self.decide() is not KernelChoice.SWITCH:
            raise IncompatibleSystemError("Cannot continue with 16K kernel. Exiting.")

        self.editor.enable_4k_kernel(boot_config)
        return GateOutcome.REBOOT_REQUIRED

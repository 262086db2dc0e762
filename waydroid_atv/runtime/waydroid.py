"""Waydroid runtime control used by install and uninstall"""

from pathlib import Path
from typing import Union
from ..core.errors import IncompatibleSystemError, ProvisioningError
from ..core.logger import logger
from ..core.utils import command_exists, run_command


# Both naming schemes are tried; distro kernels ship one or the other
KERNEL_MODULES = ("binder_linux", "ashmem_linux", "binder", "ashmem")

CONTAINER_SERVICE = "waydroid-container"
BRIDGE_INTERFACE = "waydroid0"
BRIDGE_SUBNET = "192.168.240.0/24"
NET_SCRIPT = "/usr/lib/waydroid/data/scripts/waydroid-net.sh"
DNSMASQ_PATTERNS = ("dnsmasq.*waydroid", "dnsmasq.*192.168.240.1", "dnsmasq.*waydroid0")

EXTRA_IMAGES_ENV = "WAYDROID_EXTRA_IMAGES_PATH"


class WaydroidRuntime:
    """Thin wrapper around the waydroid CLI and its host-side plumbing"""

    def __init__(self, proc_devices: Union[str, Path] = "/proc/devices"):
        self.proc_devices = Path(proc_devices)

    def is_installed(self) -> bool:
        return command_exists("waydroid")

    def load_kernel_modules(self):
        logger.info("Checking binder / ashmem modules...")
        for module in KERNEL_MODULES:
            ret, _, _ = run_command(["modprobe", module], timeout=30)
            logger.debug(f"modprobe {module}: {'ok' if ret == 0 else 'not available'}")

    def has_binder_device(self) -> bool:
        """A character device named ``binder`` is registered with the kernel"""
        try:
            lines = self.proc_devices.read_text().splitlines()
        except OSError:
            return False
        return any(line.split()[-1:] == ["binder"] for line in lines)

    def ensure_binder(self):
        self.load_kernel_modules()
        if not self.has_binder_device():
            raise IncompatibleSystemError(
                "Binder kernel module is missing. /dev/binder will not be available. "
                "Your kernel may not support Waydroid. "
                "On RPi, ensure you are on 4K kernel8.img."
            )

    def stop_session(self):
        """Stop a running session and the container service, if any"""
        logger.info("Stopping Waydroid container service before init...")
        if self.is_installed():
            run_command(["waydroid", "session", "stop"], timeout=60)
        run_command(["systemctl", "stop", CONTAINER_SERVICE], timeout=60)

    def init_with_images(self, images_dir: Union[str, Path]):
        """Force a fresh ``waydroid init`` from the extra images directory"""
        logger.info("Initializing Waydroid with Android TV image...")
        ret, _, err = run_command(
            ["waydroid", "init", "-f"],
            timeout=1800,
            env={EXTRA_IMAGES_ENV: str(images_dir)},
        )
        if ret != 0:
            raise ProvisioningError(f"waydroid init failed: {err.strip()}")
        logger.info("Waydroid init done.")

    def disable_service(self):
        logger.info("Stopping Waydroid services...")
        run_command(["systemctl", "stop", CONTAINER_SERVICE], timeout=60)
        run_command(["systemctl", "disable", CONTAINER_SERVICE], timeout=60)

    def clean_runtime(self):
        """Tear down container networking left behind by Waydroid.

        Every step is best-effort; missing processes, links and rules are fine.
        """
        logger.info("Pre-cleaning Waydroid runtime (net + processes)...")

        run_command(["systemctl", "stop", CONTAINER_SERVICE], timeout=60)
        if Path(NET_SCRIPT).exists():
            run_command([NET_SCRIPT, "stop"], timeout=60)

        for pattern in DNSMASQ_PATTERNS:
            run_command(["pkill", "-f", pattern], timeout=10)

        run_command(["ip", "link", "delete", BRIDGE_INTERFACE], timeout=10)
        run_command([
            "iptables", "-t", "nat", "-D", "POSTROUTING",
            "-s", BRIDGE_SUBNET, "!", "-d", BRIDGE_SUBNET, "-j", "MASQUERADE",
        ], timeout=10)
        run_command(["ip", "route", "del", BRIDGE_SUBNET, "dev", BRIDGE_INTERFACE], timeout=10)

"""APT package management for the Waydroid install"""

import time
import requests
from pathlib import Path
from typing import List, Optional
from ..core.config import Config
from ..core.errors import ProvisioningError
from ..core.logger import logger
from ..core.utils import command_exists, ensure_directory, run_command


class PackageManager:
    """Manage system package installation through apt-get"""

    def __init__(self, config: Config):
        self.config = config
        self.packages: List[str] = config.get("apt.packages")
        self.list_file = Path(config.get("apt.list_file"))
        self.keyring = Path(config.get("apt.keyring"))

    @staticmethod
    def is_available() -> bool:
        """True on APT-family systems"""
        return command_exists("apt-get") or command_exists("apt")

    def update_package_list(self):
        """Update package list"""
        logger.info("Updating package database...")
        ret, _, err = run_command(["apt-get", "update", "-y"], timeout=600)

        if ret != 0:
            raise ProvisioningError(f"Failed to update package list: {err.strip()}")

    def wait_for_dpkg_lock(self, max_wait: int = 300) -> bool:
        """Wait for dpkg lock to be released"""
        start_time = time.time()

        while time.time() - start_time < max_wait:
            ret1, _, _ = run_command(["fuser", "/var/lib/dpkg/lock-frontend"], timeout=5)
            ret2, _, _ = run_command(["fuser", "/var/lib/dpkg/lock"], timeout=5)

            # fuser exits non-zero when nobody holds the file (or is not installed)
            if ret1 != 0 and ret2 != 0:
                return True

            logger.info("Waiting for package manager lock to be released...")
            time.sleep(5)

        return False

    def install_packages(self, packages: List[str]):
        """Install a list of packages, failing the run if apt fails"""
        if not packages:
            return

        if not self.wait_for_dpkg_lock():
            raise ProvisioningError("Package manager is locked by another process")

        logger.info(f"Installing {', '.join(packages)}...")
        ret, _, err = run_command(
            ["apt-get", "install", "-y"] + packages,
            timeout=1800,
            env={"DEBIAN_FRONTEND": "noninteractive"},
        )

        if ret != 0:
            raise ProvisioningError(f"Failed to install {', '.join(packages)}: {err.strip()}")

    def install_dependencies(self):
        """Install the tools the rest of the installer shells out to"""
        self.update_package_list()
        self.install_packages(self.packages)

    def release_codename(self, fallback: str = "") -> str:
        """Distribution codename for the repo entry (bookworm, noble, ...)"""
        ret, out, _ = run_command(["lsb_release", "-cs"], timeout=10)
        codename = out.strip() if ret == 0 else ""
        codename = codename or fallback

        if not codename:
            raise ProvisioningError("Cannot determine the distribution codename (lsb_release -cs)")
        return codename

    def add_waydroid_repo(self, codename: str, timeout: Optional[int] = 30):
        """Add the official Waydroid APT repository with its signing key"""
        key_url = self.config.get("apt.key_url")
        repo_url = self.config.get("apt.repo_url")

        logger.info(f"Fetching Waydroid signing key from {key_url}")
        try:
            response = requests.get(key_url, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ProvisioningError(f"Failed to download Waydroid signing key: {e}")

        ensure_directory(self.keyring.parent)
        self.keyring.write_bytes(response.content)
        self.keyring.chmod(0o644)

        ensure_directory(self.list_file.parent)
        self.list_file.write_text(
            f"deb [signed-by={self.keyring}] {repo_url} {codename} main\n"
        )
        logger.info(f"Wrote {self.list_file} for {codename}")

    def purge(self, package: str) -> bool:
        """Purge a package. Best-effort: failures are logged, never raised"""
        ret, _, err = run_command(
            ["apt-get", "purge", "-y", package],
            timeout=900,
            env={"DEBIAN_FRONTEND": "noninteractive"},
        )
        if ret != 0:
            logger.warning(f"Failed to purge {package}: {err.strip()}")
            return False
        return True

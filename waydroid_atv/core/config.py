"""Installer configuration with dotted-key access"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union
from .logger import logger


CONFIG_ENV_VAR = "WAYDROID_ATV_CONFIG"
DEFAULT_CONFIG_FILE = Path("/etc/waydroid-atv/config.json")

RELEASE_POLICIES = ("pinned", "latest")

DEFAULTS: Dict[str, Any] = {
    "images": {
        # Pinned build of supechicken/waydroid-androidtv-build
        "release_tag": "20250913",
        "release_policy": "pinned",
        "repository": "supechicken/waydroid-androidtv-build",
        "download_base": "https://github.com/supechicken/waydroid-androidtv-build/releases/download",
        "api_base": "https://api.github.com/repos",
        "archive_template": "lineage-20.0-{tag}-UNOFFICIAL-WayDroidATV_{suffix}.zip",
        "work_dir": "/tmp/waydroid-atv",
        "dir": "/etc/waydroid-extra/images",
        "download_timeout": 60,
    },
    "boot": {
        "config_candidates": ["/boot/firmware/config.txt", "/boot/config.txt"],
        "cmdline_candidates": ["/boot/firmware/cmdline.txt", "/boot/cmdline.txt"],
        "pressure_path": "/proc/pressure",
    },
    "system": {
        "os_release": "/etc/os-release",
        "device_model": "/proc/device-tree/model",
        "proc_devices": "/proc/devices",
    },
    "apt": {
        "packages": ["curl", "ca-certificates", "wget", "unzip", "lsb-release"],
        "repo_url": "https://repo.waydro.id/",
        "key_url": "https://repo.waydro.id/waydroid.gpg",
        "list_file": "/etc/apt/sources.list.d/waydroid.list",
        "keyring": "/usr/share/keyrings/waydroid.gpg",
    },
    "launcher": {
        "path": "/usr/local/bin/waydroid-atv-launch",
        "desktop_file": "/usr/share/applications/waydroid-atv.desktop",
        "boot_timeout": 60,
        "grace_iterations": 10,
        "poll_interval": 1.0,
        "settle_delay": 2.0,
    },
    "uninstall": {
        "remove_dirs": [
            "/var/lib/waydroid",
            "/var/cache/waydroid",
            "/etc/waydroid",
            "/etc/waydroid-extra",
            "/usr/local/share/waydroid",
            "/usr/share/waydroid",
            "/usr/lib/waydroid",
        ],
        "applications_dir": "/usr/share/applications",
        "home_globs": ["/home/*", "/root"],
    },
    "logging": {
        "file": "/var/log/waydroid-atv/installer.log",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


class Config:
    """Defaults overlaid with an optional JSON file"""

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        if config_file is None:
            config_file = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE
        self.config_file = Path(config_file)
        self.data = copy.deepcopy(DEFAULTS)
        self._load()

    def _load(self):
        if not self.config_file.exists():
            return

        try:
            with open(self.config_file) as f:
                overrides = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable config {self.config_file}: {e}")
            return

        if not isinstance(overrides, dict):
            logger.warning(f"Ignoring config {self.config_file}: expected a JSON object")
            return

        _merge(self.data, overrides)
        logger.debug(f"Loaded configuration from {self.config_file}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key, e.g. ``images.release_tag``"""
        node: Any = self.data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any):
        parts = key.split(".")
        node = self.data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value

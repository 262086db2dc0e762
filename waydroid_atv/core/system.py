"""Host detection: OS identity, CPU architecture, page size, Raspberry Pi model"""

import os
import platform
import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union
from .logger import logger
from .utils import run_command


DEFAULT_PAGE_SIZE = 4096


class Architecture(Enum):
    ARM64 = "arm64"
    X86_64 = "x86_64"
    OTHER = "other"

    @classmethod
    def from_machine(cls, machine: str) -> "Architecture":
        machine = machine.strip().lower()
        if machine in ("aarch64", "arm64"):
            return cls.ARM64
        if machine == "x86_64":
            return cls.X86_64
        return cls.OTHER


@dataclass(frozen=True)
class SystemProfile:
    """Everything the installer needs to know about the host, probed once per run"""
    os_id: str
    os_name: str
    os_version_id: str
    os_like: str
    architecture: Architecture
    page_size: int
    is_raspberry_pi: bool = False
    is_raspberry_pi5: bool = False
    machine: str = ""
    model: str = ""
    os_codename: str = ""

    @property
    def is_debian_family(self) -> bool:
        """Debian/Ubuntu derivatives served by the official Waydroid repo"""
        identity = f"{self.os_id} {self.os_like}".lower()
        return any(name in identity for name in ("debian", "ubuntu", "raspbian", "linuxmint", "pop"))

    def describe(self) -> str:
        return (f"{self.os_name} (ID={self.os_id}, VERSION_ID={self.os_version_id}, "
                f"LIKE={self.os_like})")


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse os-release KEY=value lines, honouring shell quoting"""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = " ".join(parts)
    return values


def read_device_model(path: Union[str, Path]) -> str:
    """Device-tree model string, empty when the file is absent"""
    try:
        # The device-tree string is NUL terminated
        return Path(path).read_bytes().decode(errors="replace").rstrip("\x00").strip()
    except OSError:
        return ""


def get_page_size() -> int:
    try:
        size = os.sysconf("SC_PAGE_SIZE")
        if size > 0:
            return size
    except (ValueError, OSError, AttributeError):
        pass

    for name in ("PAGE_SIZE", "PAGESIZE"):
        ret, out, _ = run_command(["getconf", name], timeout=5)
        if ret == 0 and out.strip().isdigit():
            return int(out.strip())

    logger.debug(f"Page size unavailable, assuming {DEFAULT_PAGE_SIZE}")
    return DEFAULT_PAGE_SIZE


def probe_system(os_release: Union[str, Path] = "/etc/os-release",
                 device_model: Union[str, Path] = "/proc/device-tree/model",
                 machine: Optional[str] = None,
                 page_size: Optional[int] = None) -> SystemProfile:
    """Build the SystemProfile. Read-only; a missing file never fails"""
    release: Dict[str, str] = {}
    try:
        release = parse_os_release(Path(os_release).read_text())
    except OSError:
        logger.debug(f"{os_release} not readable, OS identity unknown")

    model = read_device_model(device_model)
    machine = machine if machine is not None else platform.machine()

    profile = SystemProfile(
        os_id=release.get("ID") or "unknown",
        os_name=release.get("NAME") or "Unknown",
        os_version_id=release.get("VERSION_ID") or "?",
        os_like=release.get("ID_LIKE", ""),
        os_codename=release.get("VERSION_CODENAME", ""),
        architecture=Architecture.from_machine(machine),
        machine=machine,
        page_size=page_size if page_size is not None else get_page_size(),
        model=model,
        is_raspberry_pi="raspberry pi" in model.lower(),
        is_raspberry_pi5="Raspberry Pi 5" in model,
    )

    logger.info(f"Detected OS: {profile.describe()}")
    logger.info(f"Architecture: {machine}")
    logger.info(f"Detected kernel page size: {profile.page_size} bytes")
    if model:
        logger.debug(f"Device model: {model}")

    return profile

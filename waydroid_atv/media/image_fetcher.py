"""Download and stage the Android TV system/vendor images"""

import shutil
import zipfile
import requests
from enum import Enum
from pathlib import Path
from typing import Dict, Optional
from packaging.version import InvalidVersion, parse as parse_version
from rich.progress import (BarColumn, DownloadColumn, Progress, TextColumn,
                           TimeRemainingColumn, TransferSpeedColumn)
from ..core.config import Config
from ..core.errors import IncompatibleSystemError, ProvisioningError
from ..core.logger import console, logger
from ..core.system import Architecture
from ..core.utils import ensure_directory


IMAGE_FILES = ("system.img", "vendor.img")

CHUNK_SIZE = 1024 * 1024


class ImageVariant(Enum):
    """Android TV build flavour, one per supported architecture"""
    ARM64 = "arm64"
    X86_64_MINIGBM = "x86_64-minigbm"

    @property
    def suffix(self) -> str:
        return self.value

    @classmethod
    def for_architecture(cls, architecture: Architecture) -> "ImageVariant":
        if architecture is Architecture.ARM64:
            return cls.ARM64
        if architecture is Architecture.X86_64:
            return cls.X86_64_MINIGBM
        raise IncompatibleSystemError(f"No Android TV image for architecture {architecture.value}")


class ImageFetcher:
    """Fetch a supechicken/waydroid-androidtv-build release and install its images"""

    def __init__(self, config: Config, release_tag: Optional[str] = None,
                 release_policy: Optional[str] = None):
        self.config = config
        self.pinned_tag = release_tag or str(config.get("images.release_tag"))
        self.release_policy = release_policy or config.get("images.release_policy", "pinned")
        self.work_dir = Path(config.get("images.work_dir"))
        self.images_dir = Path(config.get("images.dir"))
        self.timeout = config.get("images.download_timeout", 60)

    def get_latest_release_tag(self) -> Optional[str]:
        """Latest published release tag from the GitHub API"""
        repository = self.config.get("images.repository")
        url = f"{self.config.get('images.api_base')}/{repository}/releases/latest"
        logger.info(f"Checking {repository} for a newer Android TV release...")

        try:
            response = requests.get(url, timeout=15,
                                    headers={"Accept": "application/vnd.github+json"})
            response.raise_for_status()
            tag = response.json().get("tag_name")
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Release lookup failed: {e}")
            return None

        return tag or None

    def resolve_release_tag(self) -> str:
        """Pick the release to install.

        ``pinned`` always uses the configured tag. ``latest`` uses the newest
        published tag when it compares greater than the pinned one, and falls
        back to the pinned tag when the lookup fails.
        """
        if self.release_policy != "latest":
            return self.pinned_tag

        latest = self.get_latest_release_tag()
        if latest is None:
            logger.warning(f"Using pinned release {self.pinned_tag}")
            return self.pinned_tag

        try:
            newer = parse_version(latest) > parse_version(self.pinned_tag)
        except InvalidVersion:
            logger.warning(f"Cannot compare release tags {latest!r} and {self.pinned_tag!r}, "
                           f"using pinned release")
            return self.pinned_tag

        if newer:
            logger.info(f"Newer Android TV release available: {latest}")
            return latest
        return self.pinned_tag

    def archive_name(self, variant: ImageVariant, tag: str) -> str:
        return self.config.get("images.archive_template").format(tag=tag, suffix=variant.suffix)

    def download_url(self, variant: ImageVariant, tag: str) -> str:
        base = self.config.get("images.download_base").rstrip("/")
        return f"{base}/{tag}/{self.archive_name(variant, tag)}"

    def prepare_work_dir(self) -> Path:
        """Wipe and recreate the scratch directory"""
        shutil.rmtree(self.work_dir, ignore_errors=True)
        return ensure_directory(self.work_dir)

    def download(self, url: str, destination: Path):
        logger.info("Downloading Android TV image (~1GB)...")

        try:
            with requests.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                total = int(response.headers.get("content-length", 0)) or None

                with Progress(
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    DownloadColumn(),
                    TransferSpeedColumn(),
                    TimeRemainingColumn(),
                    console=console,
                    transient=True,
                ) as progress:
                    task = progress.add_task(destination.name, total=total)
                    with open(destination, "wb") as f:
                        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                            f.write(chunk)
                            progress.advance(task, len(chunk))
        except requests.RequestException as e:
            raise ProvisioningError(f"Failed to download {url}: {e}")
        except OSError as e:
            raise ProvisioningError(f"Failed to write {destination}: {e}")

    def extract_images(self, archive: Path) -> Dict[str, Path]:
        """Extract system.img and vendor.img, flattening any directories in the zip"""
        logger.info("Extracting system.img and vendor.img...")
        extracted: Dict[str, Path] = {}

        try:
            with zipfile.ZipFile(archive) as zf:
                for member in zf.infolist():
                    name = Path(member.filename).name
                    if member.is_dir() or name not in IMAGE_FILES or name in extracted:
                        continue
                    target = self.work_dir / name
                    with zf.open(member) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst, CHUNK_SIZE)
                    extracted[name] = target
        except (zipfile.BadZipFile, OSError) as e:
            raise ProvisioningError(f"Failed to extract {archive.name}: {e}")

        missing = [name for name in IMAGE_FILES if name not in extracted]
        if missing:
            raise ProvisioningError(
                f"{'/'.join(missing)} not found after unzip of {archive.name}. Aborting."
            )
        return extracted

    def fetch(self, variant: ImageVariant) -> Dict[str, Path]:
        """Download the archive for ``variant`` and return the extracted image paths"""
        tag = self.resolve_release_tag()
        url = self.download_url(variant, tag)
        logger.info("Using Android TV image:")
        logger.info(f"  {url}")

        self.prepare_work_dir()
        archive = self.work_dir / self.archive_name(variant, tag)
        self.download(url, archive)
        return self.extract_images(archive)

    def place_images(self, images: Dict[str, Path]) -> Path:
        """Copy the images into the Waydroid extra-images directory, replacing old ones"""
        logger.info(f"Placing images into {self.images_dir}...")
        try:
            ensure_directory(self.images_dir)
            for name in IMAGE_FILES:
                shutil.copyfile(images[name], self.images_dir / name)
        except OSError as e:
            raise ProvisioningError(f"Failed to place images into {self.images_dir}: {e}")
        return self.images_dir

#!/usr/bin/env python3
"""Waydroid + Android TV installer - install, uninstall, or write the README"""

import sys
from pathlib import Path
from typing import Callable, Optional
import click
from . import __version__
from .core.config import Config, RELEASE_POLICIES
from .core.errors import PrivilegeError, ProvisioningError, WaydroidATVError
from .core.logger import console, logger, print_error, setup_logging
from .core.system import SystemProfile, probe_system
from .core.utils import is_root
from .media.image_fetcher import ImageFetcher, ImageVariant
from .readme import README_NAME, write_readme as write_readme_file
from .runtime.waydroid import WaydroidRuntime
from .system.boot_params import BootParameterEditor
from .system.compatibility import CompatibilityGate, GateOutcome
from .system.desktop import LauncherWriter
from .system.package_manager import PackageManager
from .ui.prompts import KernelChoice, ask_kernel_switch
from .uninstaller import Uninstaller


def section(title: str):
    console.print(f"\n[red]▶▶▶ {title} ◀◀◀[/red]")
    console.print("[cyan]" + "═" * 60 + "[/cyan]")


class WaydroidATVInstaller:
    """Sequential install of Waydroid and the Android TV image.

    Each step either succeeds or raises a WaydroidATVError; nothing already
    done is rolled back.
    """

    def __init__(self, config: Config,
                 decide: Callable[[], KernelChoice] = ask_kernel_switch,
                 editor: Optional[BootParameterEditor] = None,
                 package_manager: Optional[PackageManager] = None,
                 runtime: Optional[WaydroidRuntime] = None,
                 fetcher: Optional[ImageFetcher] = None,
                 writer: Optional[LauncherWriter] = None):
        self.config = config
        self.editor = editor or BootParameterEditor(config)
        self.gate = CompatibilityGate(self.editor, decide)
        self.package_manager = package_manager or PackageManager(config)
        self.runtime = runtime or WaydroidRuntime(config.get("system.proc_devices"))
        self.fetcher = fetcher or ImageFetcher(config)
        self.writer = writer or LauncherWriter(config)
        self.needs_reboot = False

    def check_system(self, profile: SystemProfile) -> GateOutcome:
        section("SYSTEM VALIDATION")
        return self.gate.evaluate(profile, self.package_manager.is_available())

    def configure_boot(self, profile: SystemProfile):
        section("KERNEL PARAMETERS (psi + cgroups)")
        self.needs_reboot = self.editor.apply_runtime_flags(profile)

    def install_packages(self):
        section("INSTALLING DEPENDENCIES")
        self.package_manager.install_dependencies()

    def install_waydroid(self, profile: SystemProfile):
        section("INSTALLING WAYDROID")
        if self.runtime.is_installed():
            logger.info("Waydroid already installed.")
            return

        if profile.is_debian_family:
            logger.info(f"Adding Waydroid APT repository for {profile.os_name}...")
            codename = self.package_manager.release_codename(fallback=profile.os_codename)
            self.package_manager.add_waydroid_repo(codename)
            logger.info("Installing Waydroid from official repo...")
            self.package_manager.update_package_list()
            self.package_manager.install_packages(["waydroid"])
        else:
            logger.info("OS not clearly Debian/Ubuntu-like. Trying distro waydroid package...")
            try:
                self.package_manager.install_packages(["waydroid"])
            except ProvisioningError as e:
                raise ProvisioningError(
                    f"Failed to install waydroid. Your OS may not be supported. ({e})"
                ) from e

    def check_binder(self):
        self.runtime.ensure_binder()

    def install_images(self, profile: SystemProfile) -> Path:
        section("ANDROID TV IMAGE")
        variant = ImageVariant.for_architecture(profile.architecture)
        images = self.fetcher.fetch(variant)
        return self.fetcher.place_images(images)

    def initialize_waydroid(self, images_dir: Path):
        section("INITIALIZING WAYDROID")
        self.runtime.stop_session()
        self.runtime.init_with_images(images_dir)

    def create_launchers(self):
        section("LAUNCHERS")
        self.writer.write()

    def show_reboot_instructions(self):
        logger.info("Please REBOOT now, then re-run this installer.")
        console.print("\nExample:\n  sudo reboot\n")

    def finalize(self, profile: SystemProfile):
        if not Path(README_NAME).exists():
            logger.info("Tip: generate a text README with:")
            logger.info("  waydroid-atv-installer --write-readme")

        console.print("\n[cyan]" + "=" * 63 + "[/cyan]")
        console.print("[green] Waydroid + Android TV installation complete.[/green]")
        console.print("[cyan]" + "=" * 63 + "[/cyan]")

        if profile.is_raspberry_pi and self.needs_reboot:
            console.print("[yellow]A reboot is RECOMMENDED now so psi/cgroup flags take effect:[/yellow]")
            console.print("  sudo reboot\n")

        console.print("To launch Android TV (after any required reboot), run as normal user:")
        console.print("  waydroid-atv-launch\n")
        console.print("To uninstall/reset later:")
        console.print("  sudo waydroid-atv-installer --uninstall\n")

    def run(self, profile: SystemProfile) -> int:
        """Main installation flow"""
        if self.check_system(profile) is GateOutcome.REBOOT_REQUIRED:
            self.show_reboot_instructions()
            return 0

        self.configure_boot(profile)
        self.install_packages()
        self.install_waydroid(profile)
        self.check_binder()
        images_dir = self.install_images(profile)
        self.initialize_waydroid(images_dir)
        self.create_launchers()
        self.finalize(profile)
        return 0


def probe(config: Config) -> SystemProfile:
    return probe_system(
        os_release=config.get("system.os_release"),
        device_model=config.get("system.device_model"),
    )


@click.command()
@click.option("--uninstall", is_flag=True, help="Remove Waydroid, the Android TV image and launchers")
@click.option("--write-readme", is_flag=True, help=f"Write {README_NAME} to the current directory")
@click.option("--release-tag", metavar="TAG", help="Android TV release tag to install")
@click.option("--latest-release", is_flag=True,
              help="Use the newest published release when it is newer than the pinned tag")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False),
              help="Path to a JSON configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.version_option(__version__)
def main(uninstall, write_readme, release_tag, latest_release, config_file, verbose):
    """Waydroid + Android TV one-shot installer"""
    if uninstall and write_readme:
        raise click.UsageError("--uninstall and --write-readme are mutually exclusive")

    if write_readme:
        setup_logging(verbose)
        write_readme_file()
        sys.exit(0)

    config = Config(config_file)
    setup_logging(verbose, config.get("logging.file") if is_root() else None)

    if release_tag:
        config.set("images.release_tag", release_tag)
    if latest_release:
        config.set("images.release_policy", "latest")
    if config.get("images.release_policy") not in RELEASE_POLICIES:
        raise click.BadParameter(
            f"images.release_policy must be one of {', '.join(RELEASE_POLICIES)}",
            param_hint="config",
        )

    try:
        if not is_root():
            raise PrivilegeError("Run this installer with sudo.")

        profile = probe(config)
        if uninstall:
            code = Uninstaller(config).run(profile)
        else:
            code = WaydroidATVInstaller(config).run(profile)
    except WaydroidATVError as e:
        print_error(e)
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()

"""Tests for the install flow and the installer command line"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from waydroid_atv import installer
from waydroid_atv.core.errors import IncompatibleSystemError, ProvisioningError
from waydroid_atv.core.system import Architecture
from waydroid_atv.installer import WaydroidATVInstaller
from waydroid_atv.media.image_fetcher import ImageVariant
from waydroid_atv.readme import README_NAME
from waydroid_atv.system.boot_params import PI5_4K_KERNEL_STANZA
from waydroid_atv.ui.prompts import KernelChoice


def make_installer(config, choice=KernelChoice.KEEP, installed=False):
    package_manager = MagicMock()
    package_manager.is_available.return_value = True
    package_manager.release_codename.return_value = "bookworm"
    runtime = MagicMock()
    runtime.is_installed.return_value = installed
    fetcher = MagicMock()
    fetcher.place_images.return_value = Path("/etc/waydroid-extra/images")

    return WaydroidATVInstaller(
        config,
        decide=lambda: choice,
        package_manager=package_manager,
        runtime=runtime,
        fetcher=fetcher,
        writer=MagicMock(),
    )


class TestInstallFlow:
    """Step ordering and branching"""

    def test_full_install_on_debian_arm64(self, config, make_profile):
        inst = make_installer(config)

        assert inst.run(make_profile()) == 0

        inst.package_manager.install_dependencies.assert_called_once()
        inst.package_manager.add_waydroid_repo.assert_called_once_with("bookworm")
        inst.package_manager.install_packages.assert_called_once_with(["waydroid"])
        inst.runtime.ensure_binder.assert_called_once()
        inst.fetcher.fetch.assert_called_once_with(ImageVariant.ARM64)
        inst.runtime.stop_session.assert_called_once()
        inst.runtime.init_with_images.assert_called_once_with(Path("/etc/waydroid-extra/images"))
        inst.writer.write.assert_called_once()

    def test_x86_uses_minigbm_image(self, config, make_profile):
        inst = make_installer(config)

        inst.run(make_profile(architecture=Architecture.X86_64, machine="x86_64"))

        inst.fetcher.fetch.assert_called_once_with(ImageVariant.X86_64_MINIGBM)

    def test_existing_waydroid_is_not_reinstalled(self, config, make_profile):
        inst = make_installer(config, installed=True)

        inst.run(make_profile())

        inst.package_manager.add_waydroid_repo.assert_not_called()
        inst.package_manager.install_packages.assert_not_called()
        inst.runtime.init_with_images.assert_called_once()

    def test_non_debian_tries_distro_package(self, config, make_profile):
        inst = make_installer(config)

        inst.run(make_profile(os_id="fedora", os_name="Fedora Linux"))

        inst.package_manager.add_waydroid_repo.assert_not_called()
        inst.package_manager.install_packages.assert_called_once_with(["waydroid"])

    def test_non_debian_package_failure_names_os(self, config, make_profile):
        inst = make_installer(config)
        inst.package_manager.install_packages.side_effect = ProvisioningError("no candidate")

        with pytest.raises(ProvisioningError, match="may not be supported"):
            inst.run(make_profile(os_id="fedora", os_name="Fedora Linux"))

        inst.fetcher.fetch.assert_not_called()

    def test_missing_binder_stops_before_download(self, config, make_profile):
        inst = make_installer(config)
        inst.runtime.ensure_binder.side_effect = IncompatibleSystemError("Binder not available")

        with pytest.raises(IncompatibleSystemError):
            inst.run(make_profile())

        inst.fetcher.fetch.assert_not_called()

    def test_pi5_kernel_switch_stops_for_reboot(self, config, tmp_path, make_profile):
        boot_config = tmp_path / "boot" / "firmware" / "config.txt"
        boot_config.parent.mkdir(parents=True)
        boot_config.write_text("arm_64bit=1\n")
        inst = make_installer(config, choice=KernelChoice.SWITCH)

        code = inst.run(make_profile(is_raspberry_pi=True, is_raspberry_pi5=True, page_size=16384))

        assert code == 0
        assert boot_config.read_text().endswith(PI5_4K_KERNEL_STANZA)
        inst.package_manager.install_dependencies.assert_not_called()
        inst.fetcher.fetch.assert_not_called()

    def test_pi5_keeping_16k_kernel_aborts(self, config, tmp_path, make_profile):
        boot_config = tmp_path / "boot" / "firmware" / "config.txt"
        boot_config.parent.mkdir(parents=True)
        boot_config.write_text("arm_64bit=1\n")
        inst = make_installer(config, choice=KernelChoice.KEEP)

        with pytest.raises(IncompatibleSystemError):
            inst.run(make_profile(is_raspberry_pi=True, is_raspberry_pi5=True, page_size=16384))

        inst.package_manager.install_dependencies.assert_not_called()

    def test_pi_cmdline_change_requests_reboot(self, config, tmp_path, make_profile):
        cmdline = tmp_path / "boot" / "firmware" / "cmdline.txt"
        cmdline.parent.mkdir(parents=True)
        cmdline.write_text("console=tty1 rootwait\n")
        inst = make_installer(config)

        inst.run(make_profile(is_raspberry_pi=True))

        assert inst.needs_reboot is True
        assert "psi=1" in cmdline.read_text().split()

    def test_pi_cmdline_already_configured(self, config, tmp_path, make_profile):
        cmdline = tmp_path / "boot" / "firmware" / "cmdline.txt"
        cmdline.parent.mkdir(parents=True)
        cmdline.write_text("rootwait psi=1 cgroup_enable=cpuset cgroup_memory=1 cgroup_enable=memory\n")
        inst = make_installer(config)

        inst.run(make_profile(is_raspberry_pi=True))

        assert inst.needs_reboot is False


class TestInstallerCli:
    """waydroid-atv-installer entry point"""

    def test_write_readme_needs_no_root(self):
        runner = CliRunner()
        with runner.isolated_filesystem(), \
                patch.object(installer, "is_root", return_value=False):
            result = runner.invoke(installer.main, ["--write-readme"])
            assert result.exit_code == 0
            assert Path(README_NAME).is_file()

    def test_uninstall_and_write_readme_conflict(self):
        result = CliRunner().invoke(installer.main, ["--uninstall", "--write-readme"])

        assert result.exit_code == 2

    def test_missing_config_file_is_rejected(self, tmp_path):
        with patch.object(installer, "is_root", return_value=True), \
                patch.object(installer, "probe") as probe:
            result = CliRunner().invoke(installer.main, ["--config", str(tmp_path / "absent.json")])

        assert result.exit_code == 2
        probe.assert_not_called()

    def test_refuses_non_root(self):
        with patch.object(installer, "is_root", return_value=False), \
                patch.object(installer, "probe") as probe:
            result = CliRunner().invoke(installer.main, [])

        assert result.exit_code == 1
        probe.assert_not_called()

    def test_uninstall_dispatch(self, make_profile):
        with patch.object(installer, "is_root", return_value=True), \
                patch.object(installer, "setup_logging"), \
                patch.object(installer, "probe", return_value=make_profile()), \
                patch.object(installer, "Uninstaller") as uninstaller_cls, \
                patch.object(installer, "WaydroidATVInstaller") as installer_cls:
            uninstaller_cls.return_value.run.return_value = 0
            result = CliRunner().invoke(installer.main, ["--uninstall"])

        assert result.exit_code == 0
        installer_cls.assert_not_called()

    def test_release_tag_override_reaches_config(self, make_profile):
        with patch.object(installer, "is_root", return_value=True), \
                patch.object(installer, "setup_logging"), \
                patch.object(installer, "probe", return_value=make_profile()), \
                patch.object(installer, "WaydroidATVInstaller") as installer_cls:
            installer_cls.return_value.run.return_value = 0
            result = CliRunner().invoke(installer.main, ["--release-tag", "20240101", "--latest-release"])

        assert result.exit_code == 0
        config = installer_cls.call_args[0][0]
        assert config.get("images.release_tag") == "20240101"
        assert config.get("images.release_policy") == "latest"

"""Shared fixtures: a Config rooted in tmp_path and a SystemProfile factory"""

import pytest

from waydroid_atv.core.config import Config
from waydroid_atv.core.system import Architecture, SystemProfile


@pytest.fixture
def config(tmp_path):
    """Config whose every filesystem path points inside tmp_path"""
    cfg = Config(tmp_path / "no-such-config.json")
    boot = tmp_path / "boot"

    cfg.set("boot.config_candidates", [str(boot / "firmware" / "config.txt"),
                                       str(boot / "config.txt")])
    cfg.set("boot.cmdline_candidates", [str(boot / "firmware" / "cmdline.txt"),
                                        str(boot / "cmdline.txt")])
    cfg.set("boot.pressure_path", str(tmp_path / "proc" / "pressure"))
    cfg.set("system.proc_devices", str(tmp_path / "proc" / "devices"))
    cfg.set("images.work_dir", str(tmp_path / "work"))
    cfg.set("images.dir", str(tmp_path / "etc" / "waydroid-extra" / "images"))
    cfg.set("apt.list_file", str(tmp_path / "etc" / "apt" / "sources.list.d" / "waydroid.list"))
    cfg.set("apt.keyring", str(tmp_path / "usr" / "share" / "keyrings" / "waydroid.gpg"))
    cfg.set("launcher.path", str(tmp_path / "usr" / "local" / "bin" / "waydroid-atv-launch"))
    cfg.set("launcher.desktop_file",
            str(tmp_path / "usr" / "share" / "applications" / "waydroid-atv.desktop"))
    cfg.set("uninstall.applications_dir", str(tmp_path / "usr" / "share" / "applications"))
    cfg.set("uninstall.home_globs", [str(tmp_path / "home" / "*"), str(tmp_path / "root")])
    cfg.set("uninstall.remove_dirs", [str(tmp_path / "var" / "lib" / "waydroid"),
                                      str(tmp_path / "etc" / "waydroid"),
                                      str(tmp_path / "etc" / "waydroid-extra")])
    return cfg


@pytest.fixture
def make_profile():
    def factory(**overrides):
        values = dict(
            os_id="debian",
            os_name="Debian GNU/Linux",
            os_version_id="12",
            os_like="",
            os_codename="bookworm",
            architecture=Architecture.ARM64,
            machine="aarch64",
            page_size=4096,
            is_raspberry_pi=False,
            is_raspberry_pi5=False,
        )
        values.update(overrides)
        return SystemProfile(**values)

    return factory

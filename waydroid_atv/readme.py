"""Operator guide written by ``--write-readme``"""

from pathlib import Path
from typing import Union
from .core.logger import logger


README_NAME = "waydroid-atv-readme.txt"

README_TEXT = """\
WAYDROID + ANDROID TV (ONE-SHOT INSTALLER)
==========================================

This installer sets up:

- Waydroid
- Android TV 13 image from supechicken/waydroid-androidtv-build
- OS + kernel detection (Debian/Ubuntu/RPi OS and derivatives)
- Raspberry Pi 5 16K -> 4K kernel fix
- psi=1 + cgroup flags on Raspberry Pi
- Smart launcher that waits for Android to fully boot
- Full uninstaller

------------------------------------------
SUPPORTED ENVIRONMENT (CURRENTLY)
------------------------------------------

- APT-based distributions:
  - Raspberry Pi OS Bookworm (Pi 4 / Pi 5)
  - Debian 12 / 11
  - Ubuntu and derivatives (Mint, Pop!_OS, etc.)

- Architectures:
  - arm64 / aarch64  -> uses arm64 ATV image
  - x86_64           -> uses x86_64-minigbm ATV image

Non-APT systems (Fedora, Arch, etc.) are detected and refused with a
clear error instead of half-installing.

------------------------------------------
INSTALL
------------------------------------------

1) Run the installer as root:

   sudo waydroid-atv-installer

   Options:
     --release-tag TAG   install a specific Android TV build
     --latest-release    use the newest published build if newer than the pinned one
     --verbose           show debug output

2) On Raspberry Pi 5 with the default 16K PageSize kernel:

   - The installer OFFERS to switch you to the 4K kernel by adding:

       [pi5]
       kernel=kernel8.img

     to /boot/firmware/config.txt (or /boot/config.txt).

   - After switching, it exits and instructs you to reboot:

       sudo reboot

   - After reboot (now on 4K kernel), run the installer again.

3) On other systems:

   - If your kernel PageSize is not 4096, the installer will abort and
     tell you that a 4K PageSize kernel is required.
   - On Raspberry Pi, psi/cgroup flags are written into cmdline.txt.
   - On non-RPi systems, if /proc/pressure is missing, you get a warning
     telling you to enable psi=1 manually via your bootloader.

------------------------------------------
CONFIGURATION
------------------------------------------

Defaults can be overridden in /etc/waydroid-atv/config.json (or the file
named by WAYDROID_ATV_CONFIG), for example:

   {"images": {"release_tag": "20250913", "release_policy": "pinned"}}

------------------------------------------
WAYDROID + ANDROID TV SETUP
------------------------------------------

- Waydroid is installed from the official Waydroid repo on
  Debian/Ubuntu-like systems, or from the distro package otherwise.

- system.img and vendor.img are placed into:

    /etc/waydroid-extra/images

- Waydroid is initialized to use that Android TV image:

    WAYDROID_EXTRA_IMAGES_PATH=/etc/waydroid-extra/images waydroid init -f

------------------------------------------
USING THE LAUNCHER
------------------------------------------

After install (and any requested reboot), run as your NORMAL user:

   waydroid-atv-launch

The launcher:

- Starts "waydroid session start" in the background if not running
- Waits up to 60 seconds for Android to report:

    sys.boot_completed = 1

- If boot completes, it runs:

    waydroid show-full-ui

- If the session crashes or never boots, it prints a clear error and
  tells you to inspect:

    waydroid status
    waydroid log

A desktop entry is also created:

   Android TV (Waydroid)

------------------------------------------
UNINSTALL / RESET
------------------------------------------

Run:

   sudo waydroid-atv-installer --uninstall

It will:

- Stop the waydroid-container service
- Purge the waydroid package
- Remove:

    /var/lib/waydroid
    /var/cache/waydroid
    /etc/waydroid
    /etc/waydroid-extra

- On Raspberry Pi, remove any psi/cgroup flags that were added to
  cmdline.txt.

Note: It does NOT revert the Pi 5 4K kernel change. To revert that:

- Edit /boot/firmware/config.txt (or /boot/config.txt)
- Remove:

    [pi5]
    kernel=kernel8.img

- Reboot.

------------------------------------------
TROUBLESHOOTING
------------------------------------------

If "waydroid-atv-launch" fails:

1. Check status:

   waydroid status

2. Check logs:

   waydroid log

3. Verify:

   - 4K PageSize kernel (PAGE_SIZE=4096)
   - Binder present:

     grep ' binder$' /proc/devices

   - On Raspberry Pi: psi/cgroup flags exist in cmdline.txt
"""


def write_readme(directory: Union[str, Path] = ".") -> Path:
    path = Path(directory) / README_NAME
    path.write_text(README_TEXT)
    logger.info(f"README written to {path}")
    return path

"""Error types raised by the installer and the launcher"""


class WaydroidATVError(Exception):
    """Base class for every fatal, operator-facing error"""


class IncompatibleSystemError(WaydroidATVError):
    """The host cannot run Waydroid without manual intervention"""


class ProvisioningError(WaydroidATVError):
    """An external tool failed while installing or initializing"""


class PrivilegeError(WaydroidATVError):
    """The program was started as the wrong user"""


class LauncherError(WaydroidATVError):
    """The Android TV session could not be brought up"""


class SessionDiedError(LauncherError):
    pass


class BootTimeoutError(LauncherError):
    pass

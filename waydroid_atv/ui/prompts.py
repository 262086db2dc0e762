"""TTY-safe operator prompts"""

from enum import Enum
from ..core.logger import console, logger


class KernelChoice(Enum):
    KEEP = "keep"
    SWITCH = "switch"


def read_response(prompt: str) -> str:
    """Read one line from the controlling terminal, falling back to stdin.

    Reading /dev/tty keeps prompts working when the installer itself is piped.
    """
    console.print(prompt, end="")
    console.file.flush()

    try:
        with open("/dev/tty", "r") as tty:
            return tty.readline().strip()
    except OSError as e:
        logger.debug(f"No usable /dev/tty ({e}), falling back to standard input")

    try:
        return console.input().strip()
    except EOFError:
        return ""


def ask_kernel_switch() -> KernelChoice:
    """Offer the Pi 5 16K -> 4K kernel switch"""
    console.print()
    console.print("[yellow]Your Pi 5 is using the 16K PageSize kernel, "
                  "which is incompatible with Waydroid.[/yellow]")
    console.print()
    console.print("Switch to 4K kernel now?")
    console.print("  1) No, keep 16K kernel and EXIT")
    console.print("  2) Yes, switch to 4K kernel ([pi5]/kernel=kernel8.img) and EXIT", markup=False)
    console.print()

    answer = read_response("Select [1-2]: ")
    if answer == "2":
        return KernelChoice.SWITCH
    return KernelChoice.KEEP

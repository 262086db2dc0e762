"""Logging setup shared by the installer and the launcher"""

import logging
from pathlib import Path
from typing import Optional, Union
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape


logger = logging.getLogger("waydroid_atv")

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False, log_file: Optional[Union[str, Path]] = None):
    """Attach a rich console handler and, optionally, a plain file handler"""
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Re-running setup (tests, nested CLI calls) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=err_console,
        show_path=False,
        show_time=False,
        markup=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("[Waydroid-ATV] %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
        except OSError as e:
            logger.warning(f"Cannot write log file {log_path}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
            logger.addHandler(file_handler)

    return logger


def print_error(message: str):
    """Operator-facing fatal error on stderr"""
    err_console.print(f"[red][Waydroid-ATV ERROR][/red] {escape(str(message))}", highlight=False)

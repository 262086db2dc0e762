"""Small helpers for running commands and touching files"""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
from .logger import logger


def run_command(cmd: List[str], timeout: Optional[int] = None,
                cwd: Optional[Union[str, Path]] = None,
                env: Optional[Dict[str, str]] = None,
                input_data: Optional[str] = None) -> Tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr).

    Never raises for a failing command: a missing binary returns 127 and a
    timeout returns 124, mirroring the shell conventions.
    """
    logger.debug(f"Running: {' '.join(cmd)}")

    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=full_env,
            input=input_data,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return 127, "", f"{cmd[0]}: command not found"
    except subprocess.TimeoutExpired:
        return 124, "", f"{cmd[0]}: timed out after {timeout}s"

    if result.returncode != 0:
        logger.debug(f"{cmd[0]} exited with {result.returncode}: {result.stderr.strip()}")

    return result.returncode, result.stdout, result.stderr


def command_exists(name: str) -> bool:
    """Check whether a binary resolves on PATH"""
    return shutil.which(name) is not None


def is_root() -> bool:
    return os.geteuid() == 0


def ensure_directory(path: Union[str, Path], mode: int = 0o755) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True, mode=mode)
    return path


def atomic_write(path: Union[str, Path], content: str, mode: Optional[int] = None):
    """Write content through a temp file in the same directory, then rename"""
    path = Path(path)
    ensure_directory(path.parent)

    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def remove_path(path: Union[str, Path]) -> bool:
    """Remove a file, symlink or directory tree. Returns True if something was removed"""
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink(missing_ok=True)
        return True
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
        return True
    return False

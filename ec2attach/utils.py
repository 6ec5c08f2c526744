"""Utility functions for ec2attach."""

import fcntl
import logging
import os
import stat
import sys
import tempfile
from pathlib import Path
from typing import Any

from ec2attach.exceptions import RuntimeDirectoryError


def default_runtime_dir() -> Path:
    """Return the per-user runtime directory for ec2attach state.

    Uses ``$XDG_RUNTIME_DIR/ec2attach`` when the session provides a runtime
    directory, otherwise ``/tmp/ec2attach-<uid>``.

    Returns
    -------
    Path
        Directory path (not created)
    """
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / "ec2attach"
    return Path(tempfile.gettempdir()) / f"ec2attach-{os.getuid()}"


def ensure_private_dir(path: Path) -> Path:
    """Create a directory readable only by the current user.

    An existing directory is accepted only when it is a real directory owned
    by the current user with no group or other permission bits.

    Parameters
    ----------
    path : Path
        Directory to create if missing

    Returns
    -------
    Path
        The same path, guaranteed to be a private directory

    Raises
    ------
    RuntimeDirectoryError
        If the directory cannot be created, is not a directory, is a symlink,
        belongs to another user or is accessible to other users
    """
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
        info = os.lstat(path)
    except OSError as e:
        raise RuntimeDirectoryError(f"Cannot create runtime directory {path}: {e}") from e

    if stat.S_ISLNK(info.st_mode):
        raise RuntimeDirectoryError(f"Runtime path {path} is a symlink")

    if not stat.S_ISDIR(info.st_mode):
        raise RuntimeDirectoryError(f"Runtime path {path} is not a directory")

    if info.st_uid != os.getuid():
        raise RuntimeDirectoryError(
            f"Runtime directory {path} is owned by uid {info.st_uid}, not {os.getuid()}"
        )

    if info.st_mode & 0o077:
        raise RuntimeDirectoryError(
            f"Runtime directory {path} has mode {stat.S_IMODE(info.st_mode):o}, expected 700"
        )

    return path


def atomic_file_write(path: Path, content: str, mode: int = 0o600) -> None:
    """Write file atomically using temp file and rename with file locking.

    Uses an exclusive advisory lock so concurrent writers take turns. The
    content goes to a uniquely named temporary file in the same directory,
    which is then renamed over the target, so readers never observe a
    partially written file.

    Parameters
    ----------
    path : Path
        Target file path
    content : str
        File content to write
    mode : int
        Permission bits for the written file (default: 0o600)

    Raises
    ------
    OSError
        Propagated from the write after the temporary file is removed
    """
    lock_path = path.with_name(path.name + ".lock")

    with open(lock_path, "a") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        try:
            fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            temp_path = Path(temp_name)
            try:
                with os.fdopen(fd, "w") as f:
                    os.fchmod(f.fileno(), mode)
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_path, path)
            except Exception:
                if temp_path.exists():
                    temp_path.unlink()
                raise
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def is_block_device(path: str) -> bool:
    """Check whether path exists and is a block-special file.

    Parameters
    ----------
    path : str
        Path to check, symlinks are followed

    Returns
    -------
    bool
        True for block devices, False otherwise
    """
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def log_and_print_error(message: str, *args: Any) -> None:
    """Log error message and print to stderr.

    Parameters
    ----------
    message : str
        Error message with optional format placeholders
    *args : Any
        Format arguments for message
    """
    logging.debug(message, *args)
    formatted_msg = message % args if args else message
    print(f"Error: {formatted_msg}", file=sys.stderr)

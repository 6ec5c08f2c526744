"""Idempotent mounting guarded by the kernel mount table."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ec2attach.constants import MOUNTS_PATH
from ec2attach.exceptions import InvalidTarget, MountConflict
from ec2attach.utils import is_block_device

logger = logging.getLogger(__name__)

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def _unescape(field: str) -> str:
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


@dataclass(frozen=True)
class MountRecord:
    """One entry of the kernel mount table."""

    source: str
    target: str
    fstype: str


class MountTable:
    """Reader for the kernel mount table.

    Parameters
    ----------
    path : str | Path
        Mount table location (default: /proc/self/mounts)
    """

    def __init__(self, path: str | Path = MOUNTS_PATH) -> None:
        self.path = Path(path)

    def records(self) -> list[MountRecord]:
        """Return all current mounts in table order."""
        records = []
        with open(self.path) as f:
            for line in f:
                fields = line.split()
                if len(fields) < 3:
                    continue
                records.append(
                    MountRecord(
                        source=_unescape(fields[0]),
                        target=_unescape(fields[1]),
                        fstype=fields[2],
                    )
                )
        return records

    def mounted_at(self, target: str) -> MountRecord | None:
        """Return the mount currently visible at target, if any.

        When mounts are stacked the last entry is the visible one.
        """
        target = os.path.realpath(target)
        found = None
        for record in self.records():
            if record.target == target:
                found = record
        return found

    def mounts_of(self, device: str) -> list[MountRecord]:
        """Return every mount whose source resolves to device."""
        device = os.path.realpath(device)
        return [
            record
            for record in self.records()
            if record.source.startswith("/") and os.path.realpath(record.source) == device
        ]


class MountGuard:
    """Mount a device at a mount point at most once.

    Parameters
    ----------
    mount_table : MountTable | None
        Mount table reader. If None, reads /proc/self/mounts
    runner : Callable[..., Any] | None
        Subprocess runner used for the mount command. If None, uses subprocess.run
    """

    def __init__(
        self,
        mount_table: MountTable | None = None,
        runner: Callable[..., Any] | None = None,
    ) -> None:
        self.mount_table = mount_table or MountTable()
        self.runner = runner or subprocess.run

    def ensure_mounted(self, device: str, mount_point: str) -> bool:
        """Make sure device is mounted at mount_point.

        Parameters
        ----------
        device : str
            Block device path
        mount_point : str
            Existing directory

        Returns
        -------
        bool
            True if this call mounted the device, False if it already was

        Raises
        ------
        InvalidTarget
            If mount_point is not a directory or device is not a block device
        MountConflict
            If another device is mounted at mount_point, device is mounted
            elsewhere, or the mount command fails
        """
        if not os.path.isdir(mount_point):
            raise InvalidTarget(f"Mount point {mount_point} is not a directory")
        if not is_block_device(device):
            raise InvalidTarget(f"{device} is not a block device")

        resolved_device = os.path.realpath(device)
        resolved_mount_point = os.path.realpath(mount_point)

        current = self.mount_table.mounted_at(resolved_mount_point)
        if current is not None:
            if os.path.realpath(current.source) == resolved_device:
                logger.info("%s is already mounted at %s", device, mount_point)
                return False
            raise MountConflict(
                f"{mount_point} already has {current.source} ({current.fstype}) mounted"
            )

        elsewhere = [
            record.target
            for record in self.mount_table.mounts_of(resolved_device)
            if record.target != resolved_mount_point
        ]
        if elsewhere:
            raise MountConflict(f"{device} is already mounted at {', '.join(elsewhere)}")

        self._mount(resolved_device, resolved_mount_point)
        logger.info("Mounted %s at %s", device, mount_point)
        return True

    def _mount(self, device: str, mount_point: str) -> None:
        try:
            result = self.runner(
                ["mount", device, mount_point],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise MountConflict(f"Failed to run mount for {device}: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise MountConflict(
                f"mount {device} {mount_point} failed with exit code "
                f"{result.returncode}: {detail}"
            )

"""Kernel block device discovery and EBS device name allocation."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from ec2attach.constants import PARTITIONS_PATH
from ec2attach.exceptions import NoDeviceAvailable
from ec2attach.providers.aws.constants import DEVICE_CANDIDATES

logger = logging.getLogger(__name__)


class BlockDeviceSource(Protocol):
    """Source of EC2 block device mappings for an instance."""

    def get_block_device_names(self, instance_id: str) -> set[str]:
        """Return device names EC2 has mapped on the instance."""
        ...


class KernelPartitions:
    """Reader for the kernel partition table.

    Parameters
    ----------
    path : str | Path
        Partition table location (default: /proc/partitions)
    """

    def __init__(self, path: str | Path = PARTITIONS_PATH) -> None:
        self.path = Path(path)

    def names(self) -> set[str]:
        """Return the names of block devices the kernel currently knows.

        Returns
        -------
        set[str]
            Device base names such as 'xvdf' or 'nvme1n1'
        """
        names: set[str] = set()
        with open(self.path) as f:
            for line in f:
                fields = line.split()
                # major minor #blocks name
                if len(fields) != 4 or not fields[0].isdigit():
                    continue
                names.add(fields[3])
        return names

    def contains(self, device: str, names: Iterable[str] | None = None) -> bool:
        """Check whether a device path refers to a kernel-visible device.

        Parameters
        ----------
        device : str
            Device path such as '/dev/sdf'
        names : Iterable[str] | None
            Precomputed partition names. If None, the table is read

        Returns
        -------
        bool
            True if any name the device may appear under is listed
        """
        known = set(names) if names is not None else self.names()
        return any(name in known for name in device_aliases(device))


def device_aliases(device: str) -> list[str]:
    """Return kernel names a requested device path may show up as.

    Covers the literal base name, the Xen rename of ``sdX`` to ``xvdX`` and
    the base name of the symlink target (udev links NVMe volumes under the
    requested name).

    Parameters
    ----------
    device : str
        Device path such as '/dev/sdf'

    Returns
    -------
    list[str]
        Candidate kernel names, literal name first
    """
    base = os.path.basename(device)
    aliases = [base]
    if base.startswith("sd"):
        aliases.append("xvd" + base[2:])
    if os.path.islink(device):
        aliases.append(os.path.basename(os.path.realpath(device)))
    return aliases


def visible_device_path(device: str, partitions: KernelPartitions) -> str | None:
    """Return the path under which an attached device can be opened.

    Parameters
    ----------
    device : str
        Device name requested from EC2
    partitions : KernelPartitions
        Kernel partition table

    Returns
    -------
    str | None
        Canonical device path if the kernel lists the device, else None
    """
    names = partitions.names()
    resolved = os.path.realpath(device)
    if os.path.basename(resolved) in names:
        return resolved

    base = os.path.basename(device)
    if base.startswith("sd"):
        xen_name = "xvd" + base[2:]
        if xen_name in names:
            return os.path.join(os.path.dirname(device), xen_name)

    return None


class DeviceAllocator:
    """Pick a free device name for attaching a new volume.

    A name is taken when the kernel already lists it or when EC2 has it
    mapped on the instance. Both are checked because either side can run
    ahead of the other while an attachment is in flight.

    Parameters
    ----------
    ec2_manager : BlockDeviceSource
        Source of EC2 block device mappings
    partitions : KernelPartitions | None
        Kernel partition table. If None, reads /proc/partitions
    candidates : Iterable[str] | None
        Device names to try in order. If None, uses /dev/sdf to /dev/sdl
    """

    def __init__(
        self,
        ec2_manager: BlockDeviceSource,
        partitions: KernelPartitions | None = None,
        candidates: Iterable[str] | None = None,
    ) -> None:
        self.ec2_manager = ec2_manager
        self.partitions = partitions or KernelPartitions()
        self.candidates = tuple(candidates) if candidates is not None else DEVICE_CANDIDATES

    def next_free_device(self, instance_id: str) -> str:
        """Return the first candidate device not in use.

        Parameters
        ----------
        instance_id : str
            EC2 instance ID

        Returns
        -------
        str
            Free device name

        Raises
        ------
        NoDeviceAvailable
            If every candidate is in use
        """
        mapped = self.ec2_manager.get_block_device_names(str(instance_id))
        kernel_names = self.partitions.names()

        for candidate in self.candidates:
            if self.partitions.contains(candidate, kernel_names):
                logger.debug("Skipping %s: present in kernel partition table", candidate)
                continue
            if candidate in mapped:
                logger.debug("Skipping %s: mapped on %s", candidate, instance_id)
                continue
            return candidate

        raise NoDeviceAvailable(
            f"No free device among {', '.join(self.candidates)} on {instance_id}"
        )

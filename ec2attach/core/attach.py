"""Volume attachment workflow.

``VolumeAttacher`` takes a (volume, mount point) pair from any starting
condition to the volume being attached to this instance and mounted at the
mount point. Every step checks current state first, so running it again on a
finished pair changes nothing.

Nothing is rolled back on failure. A volume that was attached but could not
be mounted stays attached.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from typing import Any

from ec2attach.constants import DEVICE_POLL_INTERVAL_SECONDS, AttachmentState
from ec2attach.core.identifiers import InstanceIdentity, MountPoint, VolumeId
from ec2attach.core.waiter import wait_until
from ec2attach.exceptions import InvalidTarget
from ec2attach.providers.aws.devices import (
    DeviceAllocator,
    KernelPartitions,
    visible_device_path,
)
from ec2attach.providers.aws.metadata import MetadataClient
from ec2attach.services.mount import MountGuard

logger = logging.getLogger(__name__)


class VolumeAttacher:
    """Attach an EBS volume to the running instance and mount it once.

    Parameters
    ----------
    metadata_client : MetadataClient
        Source of instance identity
    compute_provider_factory : Callable[[str], Any]
        Factory returning an EC2Manager-like object for a region
    partitions : KernelPartitions | None
        Kernel partition table. If None, reads /proc/partitions
    mount_guard : MountGuard | None
        Mount guard. If None, uses one reading /proc/self/mounts
    device_candidates : list[str] | None
        Device names offered for new attachments. If None, uses the defaults
    poll_interval : float
        Seconds between device visibility checks
    device_timeout : float | None
        Maximum seconds to wait for the device. None waits until cancelled
    cancel_event : threading.Event | None
        Event that aborts the device wait when set
    """

    def __init__(
        self,
        metadata_client: MetadataClient,
        compute_provider_factory: Callable[[str], Any],
        partitions: KernelPartitions | None = None,
        mount_guard: MountGuard | None = None,
        device_candidates: list[str] | None = None,
        poll_interval: float = DEVICE_POLL_INTERVAL_SECONDS,
        device_timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.metadata_client = metadata_client
        self.compute_provider_factory = compute_provider_factory
        self.partitions = partitions or KernelPartitions()
        self.mount_guard = mount_guard or MountGuard()
        self.device_candidates = device_candidates
        self.poll_interval = poll_interval
        self.device_timeout = device_timeout
        self.cancel_event = cancel_event or threading.Event()
        self.state = AttachmentState.UNVALIDATED

    def _transition(self, state: AttachmentState) -> None:
        logger.debug("Attachment state %s -> %s", self.state.value, state.value)
        self.state = state

    def ensure_volume_attached(self, volume_id: str, mount_point: str) -> str:
        """Attach volume_id to this instance and mount it at mount_point.

        Parameters
        ----------
        volume_id : str
            EBS volume ID
        mount_point : str
            Absolute directory path, created if missing

        Returns
        -------
        str
            Device path that is mounted at mount_point

        Raises
        ------
        UsageError
            If volume_id or mount_point is malformed
        MetadataUnavailable, IdentityError
            If instance identity cannot be determined
        AttachError, NoDeviceAvailable
            If the volume cannot be attached
        WaitTimeout, WaitCancelled
            If the device does not appear in time
        InvalidTarget, MountConflict
            If mounting is not possible
        """
        self.state = AttachmentState.UNVALIDATED
        try:
            volume, target = self._validate(volume_id, mount_point)
            identity = self.metadata_client.identity()
            self._transition(AttachmentState.IDENTIFIED)

            compute = self.compute_provider_factory(str(identity.region))
            device = self._resolve_attachment(compute, volume, identity)
            self._transition(AttachmentState.ATTACHMENT_RESOLVED)

            visible_device = self._wait_for_device(device)
            self._transition(AttachmentState.DEVICE_VISIBLE)

            self.mount_guard.ensure_mounted(visible_device, str(target))
            self._transition(AttachmentState.MOUNTED)
        except Exception:
            self._transition(AttachmentState.FAILED)
            raise

        return visible_device

    def _validate(self, volume_id: str, mount_point: str) -> tuple[VolumeId, MountPoint]:
        volume = VolumeId(volume_id)
        target = MountPoint(mount_point)

        path = str(target)
        if os.path.lexists(path) and not os.path.isdir(path):
            raise InvalidTarget(f"Mount point {path} exists and is not a directory")
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise InvalidTarget(f"Cannot create mount point {path}: {e}") from e

        return volume, target

    def _resolve_attachment(
        self, compute: Any, volume: VolumeId, identity: InstanceIdentity
    ) -> str:
        instance_id = str(identity.instance_id)
        device = compute.find_volume_device(str(volume), instance_id)
        if device:
            logger.info("%s is already attached to %s as %s", volume, instance_id, device)
            return device

        allocator = DeviceAllocator(
            compute,
            partitions=self.partitions,
            candidates=self.device_candidates,
        )
        device = allocator.next_free_device(instance_id)
        compute.attach_volume(str(volume), instance_id, device)
        return device

    def _wait_for_device(self, device: str) -> str:
        logger.info("Waiting for %s to appear", device)
        return wait_until(
            lambda: visible_device_path(device, self.partitions),
            interval=self.poll_interval,
            timeout=self.device_timeout,
            cancel_event=self.cancel_event,
            description=f"device {device}",
        )

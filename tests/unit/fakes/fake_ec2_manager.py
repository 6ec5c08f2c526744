"""Fake EC2Manager for testing with dependency injection."""

from pathlib import Path
from typing import Any

from ec2attach.exceptions import AttachError


class FakeEC2Manager:
    """Fake EC2Manager that simulates EBS attachments for one instance.

    Attaching a volume can optionally append the new device to a partition
    table file, standing in for the kernel discovering the disk.

    Parameters
    ----------
    region : str
        AWS region (not validated)
    partitions_file : Path | None
        Partition table file to update when a volume is attached
    """

    def __init__(self, region: str = "eu-west-1", partitions_file: Path | None = None) -> None:
        """Initialize FakeEC2Manager.

        Parameters
        ----------
        region : str
            AWS region name
        partitions_file : Path | None
            Partition table file to update on attach
        """
        self.region = region
        self.partitions_file = partitions_file
        self.block_devices: dict[str, set[str]] = {}
        self.attachments: dict[str, tuple[str, str]] = {}
        self.attach_calls: list[tuple[str, str, str]] = []
        self.associate_calls: list[tuple[str, str]] = []
        self.attach_error: str | None = None

    def add_attachment(self, volume_id: str, instance_id: str, device: str) -> None:
        """Record an existing attachment."""
        self.attachments[volume_id] = (instance_id, device)
        self.block_devices.setdefault(instance_id, set()).add(device)

    def get_block_device_names(self, instance_id: str) -> set[str]:
        """Return device names mapped on the instance."""
        return set(self.block_devices.get(instance_id, set()))

    def find_volume_device(self, volume_id: str, instance_id: str) -> str | None:
        """Return the device of volume_id if attached to instance_id."""
        attachment = self.attachments.get(volume_id)
        if attachment and attachment[0] == instance_id:
            return attachment[1]
        return None

    def attach_volume(self, volume_id: str, instance_id: str, device: str) -> dict[str, Any]:
        """Attach a volume, failing when attach_error is set."""
        self.attach_calls.append((volume_id, instance_id, device))
        if self.attach_error:
            raise AttachError(f"Failed to attach {volume_id}", error_code=self.attach_error)

        self.add_attachment(volume_id, instance_id, device)

        if self.partitions_file is not None:
            name = Path(device).name.replace("sd", "xvd", 1)
            with open(self.partitions_file, "a") as f:
                f.write(f" 202       80    8388608 {name}\n")

        return {"VolumeId": volume_id, "InstanceId": instance_id, "Device": device}

    def associate_address(self, instance_id: str, public_ip: str) -> dict[str, Any]:
        """Record an address association."""
        self.associate_calls.append((instance_id, public_ip))
        return {"AssociationId": "eipassoc-fake"}

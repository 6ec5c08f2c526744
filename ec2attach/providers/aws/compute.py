"""EC2 volume and address operations for ec2attach."""

import logging
from typing import Any

import boto3

from ec2attach.exceptions import AttachError
from ec2attach.providers.aws.errors import handle_aws_errors
from ec2attach.providers.exceptions import ProviderAPIError

logger = logging.getLogger(__name__)


class EC2Manager:
    """Query and change EBS attachments and addresses of an instance."""

    def __init__(
        self,
        region: str,
        boto3_client_factory: Any | None = None,
    ) -> None:
        """Initialize EC2 manager.

        Parameters
        ----------
        region : str
            AWS region for EC2 operations
        boto3_client_factory : Callable[..., Any] | None
            Optional factory for creating boto3 clients. If None, uses boto3.client
        """
        self.region = str(region)
        self.boto3_client_factory = boto3_client_factory or boto3.client
        self.ec2_client = self.boto3_client_factory("ec2", region_name=self.region)

    def get_block_device_names(self, instance_id: str) -> set[str]:
        """Return device names EC2 has mapped on the instance.

        This includes attachments the instance kernel may not have seen yet.

        Parameters
        ----------
        instance_id : str
            EC2 instance ID

        Returns
        -------
        set[str]
            Device names such as '/dev/sdf'
        """
        with handle_aws_errors():
            response = self.ec2_client.describe_instances(InstanceIds=[str(instance_id)])

        names: set[str] = set()
        for reservation in response.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                for mapping in instance.get("BlockDeviceMappings", []):
                    device_name = mapping.get("DeviceName")
                    if device_name:
                        names.add(device_name)
        return names

    def find_volume_device(self, volume_id: str, instance_id: str) -> str | None:
        """Find the device a volume is attached under on the instance.

        Parameters
        ----------
        volume_id : str
            EBS volume ID
        instance_id : str
            EC2 instance ID

        Returns
        -------
        str | None
            Device name, or None if the volume is not attached to the instance
        """
        with handle_aws_errors():
            response = self.ec2_client.describe_volumes(
                Filters=[{"Name": "attachment.instance-id", "Values": [str(instance_id)]}]
            )

        for volume in response.get("Volumes", []):
            if volume.get("VolumeId") != str(volume_id):
                continue
            for attachment in volume.get("Attachments", []):
                if attachment.get("InstanceId") == str(instance_id):
                    return attachment.get("Device")
        return None

    def attach_volume(self, volume_id: str, instance_id: str, device: str) -> dict[str, Any]:
        """Attach a volume to the instance under the given device name.

        Parameters
        ----------
        volume_id : str
            EBS volume ID
        instance_id : str
            EC2 instance ID
        device : str
            Device name to request (e.g., '/dev/sdf')

        Returns
        -------
        dict[str, Any]
            Attachment description returned by EC2

        Raises
        ------
        AttachError
            If EC2 rejects the attachment
        """
        logger.info("Attaching %s to %s as %s", volume_id, instance_id, device)
        try:
            with handle_aws_errors():
                return self.ec2_client.attach_volume(
                    VolumeId=str(volume_id),
                    InstanceId=str(instance_id),
                    Device=device,
                )
        except ProviderAPIError as e:
            raise AttachError(
                f"Failed to attach {volume_id} to {instance_id} as {device}: {e}",
                error_code=e.error_code,
            ) from e

    def associate_address(self, instance_id: str, public_ip: str) -> dict[str, Any]:
        """Associate an elastic IP address with the instance.

        VPC addresses are associated by allocation ID; addresses without one
        are associated by public IP.

        Parameters
        ----------
        instance_id : str
            EC2 instance ID
        public_ip : str
            Elastic IP address

        Returns
        -------
        dict[str, Any]
            Response from associate_address

        Raises
        ------
        ProviderAPIError
            If EC2 rejects the lookup or the association
        """
        with handle_aws_errors():
            addresses = self.ec2_client.describe_addresses(PublicIps=[public_ip])

        allocation_id = None
        for address in addresses.get("Addresses", []):
            if address.get("PublicIp") == public_ip:
                allocation_id = address.get("AllocationId")
                break

        logger.info("Associating %s with %s", public_ip, instance_id)
        with handle_aws_errors():
            if allocation_id:
                return self.ec2_client.associate_address(
                    InstanceId=str(instance_id),
                    AllocationId=allocation_id,
                )
            return self.ec2_client.associate_address(
                InstanceId=str(instance_id),
                PublicIp=public_ip,
            )

"""Tests for EC2Manager volume and address operations."""

import pytest
from botocore.exceptions import EndpointConnectionError, NoRegionError, ReadTimeoutError
from moto import mock_aws

from ec2attach.exceptions import AttachError
from ec2attach.providers.aws.compute import EC2Manager
from ec2attach.providers.aws.errors import handle_aws_errors
from ec2attach.providers.exceptions import ProviderAPIError, ProviderConnectionError


@pytest.fixture(scope="function")
def ec2_manager(aws_credentials):
    """Return EC2Manager backed by moto."""
    with mock_aws():
        yield EC2Manager(region="us-east-1")


@pytest.fixture
def instance_id(ec2_manager):
    """Launch an instance from a registered AMI.

    Parameters
    ----------
    ec2_manager : EC2Manager
        EC2Manager fixture

    Returns
    -------
    str
        Instance ID of the running instance
    """
    ec2_client = ec2_manager.ec2_client
    image = ec2_client.register_image(
        Name="test-ami-image",
        Description="Test AMI",
        Architecture="x86_64",
        RootDeviceName="/dev/sda1",
        VirtualizationType="hvm",
    )
    response = ec2_client.run_instances(
        ImageId=image["ImageId"],
        MinCount=1,
        MaxCount=1,
        InstanceType="t3.micro",
        Placement={"AvailabilityZone": "us-east-1a"},
    )
    return response["Instances"][0]["InstanceId"]


@pytest.fixture
def volume_id(ec2_manager):
    """Create a detached volume in the instance's availability zone."""
    response = ec2_manager.ec2_client.create_volume(Size=8, AvailabilityZone="us-east-1a")
    return response["VolumeId"]


def test_find_volume_device_not_attached(ec2_manager, instance_id, volume_id):
    """Test a detached volume has no device on the instance."""
    assert ec2_manager.find_volume_device(volume_id, instance_id) is None


def test_attach_volume_then_find_device(ec2_manager, instance_id, volume_id):
    """Test an attached volume is reported under the requested device."""
    ec2_manager.attach_volume(volume_id, instance_id, "/dev/sdg")

    assert ec2_manager.find_volume_device(volume_id, instance_id) == "/dev/sdg"


def test_block_device_names_include_new_attachment(ec2_manager, instance_id, volume_id):
    """Test describe_instances mappings include attached volumes."""
    ec2_manager.attach_volume(volume_id, instance_id, "/dev/sdf")

    names = ec2_manager.get_block_device_names(instance_id)

    assert "/dev/sdf" in names


def test_attach_unknown_volume_raises_attach_error(ec2_manager, instance_id):
    """Test EC2 rejection is raised as AttachError with the error code."""
    with pytest.raises(AttachError) as exc_info:
        ec2_manager.attach_volume("vol-00000000000000000", instance_id, "/dev/sdf")

    assert exc_info.value.error_code == "InvalidVolume.NotFound"
    assert isinstance(exc_info.value.__cause__, ProviderAPIError)


def test_associate_vpc_address_by_allocation_id(ec2_manager, instance_id):
    """Test a VPC elastic IP is associated through its allocation ID."""
    ec2_client = ec2_manager.ec2_client
    allocation = ec2_client.allocate_address(Domain="vpc")

    ec2_manager.associate_address(instance_id, allocation["PublicIp"])

    addresses = ec2_client.describe_addresses(AllocationIds=[allocation["AllocationId"]])
    assert addresses["Addresses"][0]["InstanceId"] == instance_id


def test_associate_unknown_address_raises_provider_error(ec2_manager, instance_id):
    """Test API errors are surfaced as ProviderAPIError."""
    with pytest.raises(ProviderAPIError):
        ec2_manager.associate_address(instance_id, "198.51.100.7")


@pytest.mark.parametrize(
    "error",
    [
        EndpointConnectionError(endpoint_url="https://ec2.us-east-1.amazonaws.com"),
        ReadTimeoutError(endpoint_url="https://ec2.us-east-1.amazonaws.com"),
        NoRegionError(),
    ],
)
def test_botocore_failures_become_connection_errors(error):
    """Test transport and client setup failures map to ProviderConnectionError."""
    with pytest.raises(ProviderConnectionError) as exc_info:
        with handle_aws_errors():
            raise error

    assert exc_info.value.__cause__ is error

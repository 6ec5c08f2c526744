"""Pytest configuration and fixtures for ec2attach tests."""

import os
import sys
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

unit_root = Path(__file__).parent
if str(unit_root) not in sys.path:
    sys.path.insert(0, str(unit_root))

from fakes.fake_ec2_manager import FakeEC2Manager  # noqa: E402
from fakes.fake_metadata_session import FakeMetadataSession  # noqa: E402

PARTITIONS_HEADER = "major minor  #blocks  name\n\n"
ROOT_PARTITIONS = " 202        0    8388608 xvda\n 202        1    8387567 xvda1\n"


@pytest.fixture(autouse=True)
def cleanup_ec2attach_env() -> Generator[None, None, None]:
    """Ensure EC2ATTACH_* variables from the host do not leak into tests.

    Yields
    ------
    None
        Control back to test after ensuring clean environment
    """
    saved = {
        key: os.environ.pop(key)
        for key in ("EC2ATTACH_CONFIG", "EC2ATTACH_DEBUG")
        if key in os.environ
    }

    yield

    for key in ("EC2ATTACH_CONFIG", "EC2ATTACH_DEBUG"):
        os.environ.pop(key, None)
    os.environ.update(saved)


@pytest.fixture
def aws_credentials() -> Generator[None, None, None]:
    """Fixture to set AWS credentials for testing with proper cleanup.

    Sets mock AWS credentials in environment variables for the duration of the test,
    then restores the original environment state.

    Yields
    ------
    None
        Control back to test after setting credentials
    """
    keys = ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_DEFAULT_REGION")
    saved = {key: os.environ.get(key) for key in keys}

    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield

    for key, value in saved.items():
        if value is not None:
            os.environ[key] = value
        else:
            os.environ.pop(key, None)


@pytest.fixture
def metadata_session() -> FakeMetadataSession:
    """Return a fake metadata service session."""
    return FakeMetadataSession()


@pytest.fixture
def partitions_file(tmp_path: Path) -> Path:
    """Create a partition table listing only the root disk."""
    path = tmp_path / "partitions"
    path.write_text(PARTITIONS_HEADER + ROOT_PARTITIONS)
    return path


@pytest.fixture
def mounts_file(tmp_path: Path) -> Path:
    """Create a mount table with only the root filesystem mounted."""
    path = tmp_path / "mounts"
    path.write_text(
        "/dev/xvda1 / ext4 rw,relatime 0 0\n"
        "proc /proc proc rw,nosuid,nodev,noexec,relatime 0 0\n"
    )
    return path


@pytest.fixture
def fake_ec2(partitions_file: Path) -> FakeEC2Manager:
    """Return a fake EC2 manager that updates the partition table on attach."""
    return FakeEC2Manager(region="eu-west-1", partitions_file=partitions_file)


@pytest.fixture
def mount_runner(mounts_file: Path) -> MagicMock:
    """Return a fake mount command that records the mount in the table.

    The MagicMock keeps the call history; each call appends
    an ext4 entry for the device and mount point to the mount table.
    """

    def run(args, **kwargs):
        _, device, target = args
        with open(mounts_file, "a") as f:
            f.write(f"{device} {target} ext4 rw,relatime 0 0\n")
        return MagicMock(returncode=0, stdout="", stderr="")

    return MagicMock(side_effect=run)

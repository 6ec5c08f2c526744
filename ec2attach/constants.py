"""Global constants for the ec2attach application.

This module contains application-wide constants shared by the metadata client,
the attachment workflow and the command line interface.
"""

from enum import Enum

DEVICE_POLL_INTERVAL_SECONDS = 3.0
"""Delay between checks for a newly attached device in seconds.

The kernel usually exposes an attached volume within a few polls. The interval
keeps the partition table reads cheap while the attachment settles.
"""

DEVICE_WAIT_TIMEOUT_SECONDS = None
"""Default upper bound for the device visibility wait.

None waits until the device appears or the wait is cancelled. Operators who
need a bound set ``device_timeout`` in configuration or pass ``--timeout``.
"""

METADATA_REQUEST_TIMEOUT_SECONDS = 2.0
"""Timeout in seconds for a single metadata service request.

The metadata service is link-local, so anything slower than this is treated
as unavailable rather than slow.
"""

PARTITIONS_PATH = "/proc/partitions"
"""Kernel block device table used to decide whether a device is visible."""

MOUNTS_PATH = "/proc/self/mounts"
"""Kernel mount table used by the mount guard."""

DEFAULT_CONFIG_PATH = "/etc/ec2attach.yaml"
"""Configuration file read when EC2ATTACH_CONFIG is not set."""

EXIT_SUCCESS = 0
"""Exit code indicating successful program completion."""

EXIT_ERROR = 1
"""Exit code indicating a failed operation."""

EXIT_USAGE_ERROR = 2
"""Exit code indicating invalid arguments or configuration."""


class AttachmentState(str, Enum):
    """States of the volume attachment workflow."""

    UNVALIDATED = "unvalidated"
    IDENTIFIED = "identified"
    ATTACHMENT_RESOLVED = "attachment_resolved"
    DEVICE_VISIBLE = "device_visible"
    MOUNTED = "mounted"
    FAILED = "failed"

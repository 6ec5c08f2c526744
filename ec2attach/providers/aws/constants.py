"""AWS-specific constants for metadata and EC2 operations.

This module contains constants for the instance metadata service (IMDSv2)
and for the EBS device naming conventions used when attaching volumes.
"""

import re

METADATA_BASE_URL = "http://169.254.169.254/"
"""Base URL of the instance metadata service.

Absolute URLs passed to the metadata client must start with this prefix so
the session token is never sent to another host.
"""

METADATA_HOSTS = frozenset({"169.254.169.254", "fd00:ec2::254"})
"""Link-local addresses of the instance metadata service (IPv4 and IPv6)."""

TOKEN_PATH = "latest/api/token"
"""Metadata path that issues IMDSv2 session tokens (PUT)."""

INSTANCE_ID_PATH = "latest/meta-data/instance-id"
"""Metadata path returning the instance ID as plain text."""

IDENTITY_DOCUMENT_PATH = "latest/dynamic/instance-identity/document"
"""Metadata path returning the JSON instance identity document."""

TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
"""Request header carrying the requested token lifetime."""

TOKEN_HEADER = "X-aws-ec2-metadata-token"
"""Request header carrying the session token on metadata reads."""

TOKEN_TTL_SECONDS = 21600
"""Lifetime requested for metadata session tokens.

Six hours is the maximum IMDSv2 allows, so a cached token is reused across
many invocations of the tool.
"""

TOKEN_REFRESH_MARGIN_SECONDS = 60
"""Seconds before expiry at which a cached token is considered stale."""

TOKEN_CACHE_FILENAME = "imds-token"
"""Name of the token cache file inside the runtime directory."""

DEVICE_CANDIDATES = (
    "/dev/sdf",
    "/dev/sdg",
    "/dev/sdh",
    "/dev/sdi",
    "/dev/sdj",
    "/dev/sdk",
    "/dev/sdl",
)
"""Device names offered to EC2 when attaching a new volume, in order.

These are the slots EC2 recommends for additional EBS volumes on Linux.
"""

INSTANCE_ID_PATTERN = re.compile(r"i-[0-9a-f]+")
"""Pattern for EC2 instance IDs."""

REGION_PATTERN = re.compile(r"[a-z]+-[a-z]+-[0-9]")
"""Pattern for AWS region names (e.g., 'eu-west-1')."""

VOLUME_ID_PATTERN = re.compile(r"vol-[0-9a-f]{8,17}")
"""Pattern for EBS volume IDs, short and long form."""

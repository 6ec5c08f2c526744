"""Validated value types for cloud identifiers and local paths.

Each type checks its value when constructed, so a value that exists is known
to be well formed. User-supplied values fail with ``UsageError``; values read
from instance metadata fail with ``IdentityError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from ec2attach.exceptions import IdentityError, UsageError
from ec2attach.providers.aws.constants import (
    INSTANCE_ID_PATTERN,
    REGION_PATTERN,
    VOLUME_ID_PATTERN,
)


@dataclass(frozen=True)
class VolumeId:
    """EBS volume identifier such as ``vol-0123456789abcdef0``."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not VOLUME_ID_PATTERN.fullmatch(self.value):
            raise UsageError(f"Invalid volume ID: {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class InstanceId:
    """EC2 instance identifier such as ``i-0abc123``."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not INSTANCE_ID_PATTERN.fullmatch(self.value):
            raise IdentityError(f"Invalid instance ID from metadata: {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Region:
    """AWS region name such as ``eu-west-1``."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not REGION_PATTERN.fullmatch(self.value):
            raise IdentityError(f"Invalid region from metadata: {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class MountPoint:
    """Absolute directory path a volume is mounted on.

    The stored value is normalized, so ``/mnt/data/`` and ``/mnt//data``
    compare equal to ``/mnt/data``.
    """

    value: str

    def __post_init__(self) -> None:
        value = self.value
        if not isinstance(value, str) or not value.startswith("/"):
            raise UsageError(f"Mount point must be an absolute path: {value!r}")
        if any(ch in value for ch in ("\0", "\n", "\t")):
            raise UsageError(f"Mount point contains invalid characters: {value!r}")
        object.__setattr__(self, "value", os.path.normpath(value))
        if self.value == "/":
            raise UsageError("Refusing to mount over the root directory")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class InstanceIdentity:
    """Identity of the running instance as reported by metadata."""

    instance_id: InstanceId
    region: Region

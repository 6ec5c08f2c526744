"""Error kinds raised by ec2attach operations."""


class Ec2AttachError(Exception):
    """Base exception for all ec2attach errors."""


class UsageError(Ec2AttachError):
    """Raised when arguments or configuration values are invalid."""


class RuntimeDirectoryError(Ec2AttachError):
    """Raised when the per-user runtime directory cannot be prepared."""


class MetadataUnavailable(Ec2AttachError):
    """Raised when the metadata service is unreachable or answers badly."""


class IdentityError(Ec2AttachError):
    """Raised when instance identity from metadata is malformed."""


class AttachError(Ec2AttachError):
    """Raised when the attach-volume call fails.

    Parameters
    ----------
    message : str
        Error message
    error_code : str | None
        Cloud API error code, when one was reported
    """

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class NoDeviceAvailable(Ec2AttachError):
    """Raised when every candidate device path is already taken."""


class InvalidTarget(Ec2AttachError):
    """Raised when a device or mount point fails its preconditions."""


class MountConflict(Ec2AttachError):
    """Raised when the mount table disagrees with the requested mount."""


class ResolutionError(Ec2AttachError):
    """Raised when a hostname does not resolve to an IPv4 address."""


class WaitTimeout(Ec2AttachError):
    """Raised when a wait exceeds its deadline."""


class WaitCancelled(Ec2AttachError):
    """Raised when a wait is cancelled before its condition holds."""

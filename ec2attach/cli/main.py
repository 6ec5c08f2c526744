"""CLI entry point for ec2attach."""

from __future__ import annotations

import logging
import os
import sys

import fire

from ec2attach.constants import EXIT_ERROR, EXIT_USAGE_ERROR
from ec2attach.exceptions import Ec2AttachError, UsageError
from ec2attach.logging import StreamFormatter, StreamRoutingFilter
from ec2attach.providers import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
)
from ec2attach.utils import log_and_print_error

USAGE = """Usage:
  ec2attach metadata-fetch <path>
  ec2attach ensure-volume-attached <vol-id> <mount-point> [--timeout=SECONDS]
  ec2attach associate-elastic-ip <host-or-ip>"""


def get_ec2attach_class() -> type:
    """Get Ec2Attach class on-demand to avoid circular imports.

    Returns
    -------
    type
        Ec2Attach class
    """
    from ec2attach.__main__ import Ec2Attach

    return Ec2Attach


def handle_usage_error(error: UsageError, debug_mode: bool) -> None:
    """Handle invalid arguments or configuration.

    Parameters
    ----------
    error : UsageError
        The usage error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    UsageError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    log_and_print_error("%s", error)
    print(f"\n{USAGE}", file=sys.stderr)
    sys.exit(EXIT_USAGE_ERROR)


def handle_credentials_error(debug_mode: bool) -> None:
    """Handle missing cloud credentials.

    Parameters
    ----------
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ProviderCredentialsError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print("Cloud credentials not found\n", file=sys.stderr)
    print("This usually means:", file=sys.stderr)
    print("  - The instance has no IAM instance profile", file=sys.stderr)
    print("  - The instance profile role cannot be assumed", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_api_error(error: ProviderAPIError, debug_mode: bool) -> None:
    """Handle cloud API error with context-specific messages.

    Parameters
    ----------
    error : ProviderAPIError
        The API error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ProviderAPIError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    if error.error_code == "UnauthorizedOperation":
        print("Insufficient IAM permissions\n", file=sys.stderr)
        print("The instance role needs:", file=sys.stderr)
        print("  - ec2:DescribeInstances, ec2:DescribeVolumes", file=sys.stderr)
        print("  - ec2:AttachVolume", file=sys.stderr)
        print("  - ec2:DescribeAddresses, ec2:AssociateAddress", file=sys.stderr)
    else:
        print(f"Cloud API error: {error}", file=sys.stderr)

    sys.exit(EXIT_ERROR)


def handle_error(error: Exception, debug_mode: bool) -> None:
    """Handle any other operation failure.

    Parameters
    ----------
    error : Exception
        The error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    Exception
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    log_and_print_error("%s", error)
    sys.exit(EXIT_ERROR)


def configure_logging() -> None:
    """Route log records to stdout or stderr with CLI formatting."""
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(StreamFormatter("%(message)s"))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(StreamFormatter("%(message)s"))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    logging.basicConfig(
        level=logging.INFO,
        handlers=[stdout_handler, stderr_handler],
    )


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Fire maps the public methods of Ec2Attach to subcommands, so
    ``ensure_volume_attached`` is invoked as ``ensure-volume-attached``.
    Every failure ends with a non-zero exit status and a message on stderr.
    Set EC2ATTACH_DEBUG=1 to get the traceback instead.
    """
    configure_logging()

    debug_mode = os.environ.get("EC2ATTACH_DEBUG") == "1"

    try:
        fire.Fire(get_ec2attach_class()())
    except UsageError as e:
        handle_usage_error(e, debug_mode)
    except ProviderCredentialsError:
        handle_credentials_error(debug_mode)
    except ProviderAPIError as e:
        handle_api_error(e, debug_mode)
    except (Ec2AttachError, ProviderConnectionError, OSError, RuntimeError) as e:
        handle_error(e, debug_mode)

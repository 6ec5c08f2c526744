"""Logging helpers for routing and formatting CLI output."""

from ec2attach.logging.filters import StreamRoutingFilter
from ec2attach.logging.formatters import StreamFormatter

__all__ = ["StreamFormatter", "StreamRoutingFilter"]

"""Command line entry point."""

from ec2attach.cli.main import main

__all__ = ["main"]

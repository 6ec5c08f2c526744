"""Elastic IP association for the running instance."""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from collections.abc import Callable
from typing import Any

from ec2attach.exceptions import ResolutionError
from ec2attach.providers.aws.metadata import MetadataClient

logger = logging.getLogger(__name__)

_DOTTED_QUAD = re.compile(r"\d{1,3}(\.\d{1,3}){3}")


def is_ipv4_address(value: str) -> bool:
    """Check whether value is a literal dotted-quad IPv4 address."""
    if not _DOTTED_QUAD.fullmatch(value):
        return False
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def resolve_ipv4(host: str, resolver: Callable[..., Any] = socket.getaddrinfo) -> str:
    """Resolve a hostname to a single IPv4 address.

    Parameters
    ----------
    host : str
        Hostname or literal address
    resolver : Callable[..., Any]
        getaddrinfo-compatible resolver (default: socket.getaddrinfo)

    Returns
    -------
    str
        The literal address, or the first valid address the resolver returns

    Raises
    ------
    ResolutionError
        If the name does not resolve to a valid IPv4 address
    """
    if is_ipv4_address(host):
        return host

    try:
        answers = resolver(host, None, socket.AF_INET, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"Cannot resolve {host}: {e}") from e

    for answer in answers:
        address = answer[4][0]
        if is_ipv4_address(address):
            logger.debug("Resolved %s to %s", host, address)
            return address

    raise ResolutionError(f"{host} did not resolve to an IPv4 address")


class ElasticIpAssociator:
    """Associate an elastic IP address with the running instance.

    Parameters
    ----------
    metadata_client : MetadataClient
        Source of instance identity
    compute_provider_factory : Callable[[str], Any]
        Factory returning an EC2Manager-like object for a region
    resolver : Callable[..., Any]
        getaddrinfo-compatible resolver (default: socket.getaddrinfo)
    """

    def __init__(
        self,
        metadata_client: MetadataClient,
        compute_provider_factory: Callable[[str], Any],
        resolver: Callable[..., Any] = socket.getaddrinfo,
    ) -> None:
        self.metadata_client = metadata_client
        self.compute_provider_factory = compute_provider_factory
        self.resolver = resolver

    def associate(self, host_or_address: str) -> str:
        """Associate the address host_or_address names with this instance.

        Parameters
        ----------
        host_or_address : str
            Elastic IP address or a hostname resolving to it

        Returns
        -------
        str
            The associated address

        Raises
        ------
        ResolutionError
            If the hostname does not resolve
        ProviderAPIError
            If EC2 rejects the association
        """
        address = resolve_ipv4(host_or_address, self.resolver)
        identity = self.metadata_client.identity()
        compute = self.compute_provider_factory(str(identity.region))
        compute.associate_address(str(identity.instance_id), address)
        return address

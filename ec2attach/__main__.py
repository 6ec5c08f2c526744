#!/usr/bin/env python3
"""ec2attach - attach, mount and address the running EC2 instance."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Any, Callable

import boto3
import requests

for _boto_module in ["botocore", "boto3", "urllib3"]:
    logging.getLogger(_boto_module).setLevel(logging.WARNING)

from ec2attach.cli.main import main  # noqa: E402
from ec2attach.core.attach import VolumeAttacher  # noqa: E402
from ec2attach.core.config import ConfigLoader  # noqa: E402
from ec2attach.core.signals import cancel_on_signals  # noqa: E402
from ec2attach.providers.aws.compute import EC2Manager  # noqa: E402
from ec2attach.providers.aws.devices import KernelPartitions  # noqa: E402
from ec2attach.providers.aws.metadata import MetadataClient, TokenCache  # noqa: E402
from ec2attach.services.elastic_ip import ElasticIpAssociator  # noqa: E402
from ec2attach.services.mount import MountGuard, MountTable  # noqa: E402

logger = logging.getLogger(__name__)


class Ec2Attach:
    """Main CLI interface for ec2attach."""

    def __init__(
        self,
        compute_provider_factory: Callable[[str], Any] | None = None,
        session_factory: Callable[[], requests.Session] | None = None,
        boto3_client_factory: Callable | None = None,
        mount_runner: Callable[..., Any] | None = None,
    ) -> None:
        """Initialize ec2attach CLI with optional dependency injection."""
        self._config_loader = ConfigLoader()
        self._boto3_client_factory = boto3_client_factory or boto3.client
        self._compute_provider_factory_override = compute_provider_factory
        self._session_factory = session_factory or requests.Session
        self._mount_runner = mount_runner
        self._cancel_event = threading.Event()

    @property
    def compute_provider_factory(self) -> Callable[[str], Any]:
        """Get the compute provider factory."""
        if self._compute_provider_factory_override is not None:
            return self._compute_provider_factory_override
        return self._create_compute_provider

    def _create_compute_provider(self, region: str) -> EC2Manager:
        return EC2Manager(region=region, boto3_client_factory=self._boto3_client_factory)

    def _load_settings(self, **overrides: Any) -> dict[str, Any]:
        config = self._config_loader.load_config()
        return self._config_loader.get_settings(config, overrides)

    def _metadata_client(self, settings: dict[str, Any]) -> MetadataClient:
        cache_dir = settings["token_cache_dir"]
        token_cache = TokenCache(
            session=self._session_factory(),
            cache_dir=Path(cache_dir) if cache_dir else None,
            base_url=settings["metadata_url"],
            ttl_seconds=settings["token_ttl_seconds"],
            timeout=settings["request_timeout"],
        )
        return MetadataClient(token_cache)

    def _configure_verbosity(self, verbose: bool) -> None:
        if verbose:
            logging.getLogger().setLevel(logging.DEBUG)

    def metadata_fetch(self, path: str, verbose: bool = False) -> None:
        """Print a metadata document to stdout.

        Parameters
        ----------
        path : str
            Metadata path (e.g., 'latest/meta-data/instance-id') or absolute
            URL on the metadata service
        verbose : bool
            Enable debug logging
        """
        self._configure_verbosity(verbose)
        settings = self._load_settings()
        body = self._metadata_client(settings).fetch(str(path))
        sys.stdout.buffer.write(body)
        if not body.endswith(b"\n"):
            sys.stdout.buffer.write(b"\n")
        sys.stdout.flush()

    def ensure_volume_attached(
        self,
        volume_id: str,
        mount_point: str,
        timeout: float | None = None,
        verbose: bool = False,
    ) -> None:
        """Attach an EBS volume to this instance and mount it.

        Safe to repeat: a volume already attached and mounted at the mount
        point is left as is.

        Parameters
        ----------
        volume_id : str
            EBS volume ID (e.g., 'vol-0123456789abcdef0')
        mount_point : str
            Absolute directory path, created if missing
        timeout : float | None
            Seconds to wait for the device to appear (default: from config,
            unbounded unless configured)
        verbose : bool
            Enable debug logging
        """
        self._configure_verbosity(verbose)
        settings = self._load_settings(device_timeout=timeout)

        attacher = VolumeAttacher(
            metadata_client=self._metadata_client(settings),
            compute_provider_factory=self.compute_provider_factory,
            partitions=KernelPartitions(settings["partitions_path"]),
            mount_guard=MountGuard(
                mount_table=MountTable(settings["mounts_path"]),
                runner=self._mount_runner,
            ),
            device_candidates=settings["device_candidates"],
            poll_interval=settings["poll_interval"],
            device_timeout=settings["device_timeout"],
            cancel_event=self._cancel_event,
        )

        with cancel_on_signals(self._cancel_event):
            device = attacher.ensure_volume_attached(str(volume_id), str(mount_point))

        logger.info("%s is mounted at %s from %s", volume_id, mount_point, device)

    def associate_elastic_ip(self, host: str, verbose: bool = False) -> None:
        """Associate an elastic IP with this instance.

        Parameters
        ----------
        host : str
            Elastic IP address, or a hostname that resolves to it
        verbose : bool
            Enable debug logging
        """
        self._configure_verbosity(verbose)
        settings = self._load_settings()

        associator = ElasticIpAssociator(
            metadata_client=self._metadata_client(settings),
            compute_provider_factory=self.compute_provider_factory,
        )
        address = associator.associate(str(host))
        logger.info("Associated %s with this instance", address)


if __name__ == "__main__":
    main()

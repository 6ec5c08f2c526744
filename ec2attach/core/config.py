import copy
import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from ec2attach.constants import (
    DEFAULT_CONFIG_PATH,
    DEVICE_POLL_INTERVAL_SECONDS,
    DEVICE_WAIT_TIMEOUT_SECONDS,
    METADATA_REQUEST_TIMEOUT_SECONDS,
    MOUNTS_PATH,
    PARTITIONS_PATH,
)
from ec2attach.exceptions import UsageError
from ec2attach.providers.aws.constants import (
    DEVICE_CANDIDATES,
    METADATA_BASE_URL,
    METADATA_HOSTS,
    TOKEN_TTL_SECONDS,
)

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Load YAML configuration and merge it over built-in defaults."""

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS: dict[str, Any] = {
            "metadata_url": METADATA_BASE_URL,
            "token_ttl_seconds": TOKEN_TTL_SECONDS,
            "token_cache_dir": None,
            "request_timeout": METADATA_REQUEST_TIMEOUT_SECONDS,
            "poll_interval": DEVICE_POLL_INTERVAL_SECONDS,
            "device_timeout": DEVICE_WAIT_TIMEOUT_SECONDS,
            "device_candidates": list(DEVICE_CANDIDATES),
            "partitions_path": PARTITIONS_PATH,
            "mounts_path": MOUNTS_PATH,
        }

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks EC2ATTACH_CONFIG env var,
            then falls back to /etc/ec2attach.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with all variable interpolations resolved,
            or an empty dict if the file does not exist

        Raises
        ------
        UsageError
            If the file is not valid YAML or variables cannot be resolved
        RuntimeError
            If the file exists but cannot be read
        """
        if config_path is None:
            config_path = os.environ.get("EC2ATTACH_CONFIG", DEFAULT_CONFIG_PATH)

        config_file = Path(config_path)

        if not config_file.exists():
            return {}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise UsageError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {}

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            raise UsageError(f"Configuration variable resolution error: {e}") from e
        except (ValueError, KeyError, AttributeError) as e:
            raise UsageError(f"Configuration variable resolution error: {e}") from e

        if not isinstance(config, dict):
            raise UsageError(f"Configuration in {config_file} must be a mapping")

        return config

    def get_settings(
        self,
        config: dict[str, Any],
        overrides: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge built-in defaults, file configuration and overrides.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration loaded from YAML
        overrides : dict[str, Any] | None
            Values from the command line; None values are ignored

        Returns
        -------
        dict[str, Any]
            Validated settings

        Raises
        ------
        UsageError
            If unknown keys are present or values are out of range
        """
        merged = copy.deepcopy(self.BUILT_IN_DEFAULTS)

        unknown = sorted(set(config) - set(merged))
        if unknown:
            raise UsageError(f"Unknown configuration keys: {', '.join(unknown)}")

        merged.update(config)

        for key, value in (overrides or {}).items():
            if value is not None:
                merged[key] = value

        self.validate_settings(merged)
        return merged

    def validate_settings(self, settings: dict[str, Any]) -> None:
        """Validate merged settings.

        Parameters
        ----------
        settings : dict[str, Any]
            Settings to check

        Raises
        ------
        UsageError
            If a value has the wrong type or range
        """
        if not str(settings["metadata_url"]).startswith(("http://", "https://")):
            raise UsageError(f"metadata_url must be an http(s) URL: {settings['metadata_url']}")

        host = urlsplit(str(settings["metadata_url"])).hostname
        if host not in METADATA_HOSTS:
            logger.warning(
                "metadata_url points to %s, not the instance metadata service; "
                "session tokens will be sent there",
                host,
            )

        ttl = settings["token_ttl_seconds"]
        if not isinstance(ttl, int) or isinstance(ttl, bool) or not 120 <= ttl <= 21600:
            raise UsageError(f"token_ttl_seconds must be between 120 and 21600, got {ttl}")

        for key in ("request_timeout", "poll_interval"):
            value = settings[key]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise UsageError(f"{key} must be a positive number, got {value}")

        timeout = settings["device_timeout"]
        if timeout is not None and (
            not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout < 0
        ):
            raise UsageError(f"device_timeout must be a non-negative number, got {timeout}")

        candidates = settings["device_candidates"]
        if not isinstance(candidates, list) or not candidates:
            raise UsageError("device_candidates must be a non-empty list")
        for candidate in candidates:
            if not isinstance(candidate, str) or not candidate.startswith("/dev/"):
                raise UsageError(f"Invalid device candidate: {candidate!r}")

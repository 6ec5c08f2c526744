"""Instance metadata service (IMDSv2) access with a shared token cache."""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable
from pathlib import Path

import requests

from ec2attach.constants import METADATA_REQUEST_TIMEOUT_SECONDS
from ec2attach.core.identifiers import InstanceId, InstanceIdentity, Region
from ec2attach.exceptions import IdentityError, MetadataUnavailable, UsageError
from ec2attach.providers.aws.constants import (
    IDENTITY_DOCUMENT_PATH,
    INSTANCE_ID_PATH,
    METADATA_BASE_URL,
    TOKEN_CACHE_FILENAME,
    TOKEN_HEADER,
    TOKEN_PATH,
    TOKEN_REFRESH_MARGIN_SECONDS,
    TOKEN_TTL_HEADER,
    TOKEN_TTL_SECONDS,
)
from ec2attach.utils import atomic_file_write, default_runtime_dir, ensure_private_dir

logger = logging.getLogger(__name__)

_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def _normalize_base_url(base_url: str) -> str:
    return base_url if base_url.endswith("/") else base_url + "/"


class TokenCache:
    """IMDSv2 session token persisted on local disk.

    The token is stored in a per-user runtime directory so that repeated
    invocations on the same host reuse it until it is about to expire. The
    file modification time is the issue time.

    Parameters
    ----------
    session : requests.Session | None
        HTTP session used for the token request. If None, a new session is used
    cache_dir : Path | None
        Directory holding the token file. If None, uses the default runtime dir
    base_url : str
        Metadata service base URL
    ttl_seconds : int
        Requested token lifetime
    timeout : float
        Request timeout in seconds
    clock : Callable[[], float] | None
        Wall clock used to age the cache file. If None, uses time.time
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        cache_dir: Path | None = None,
        base_url: str = METADATA_BASE_URL,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        timeout: float = METADATA_REQUEST_TIMEOUT_SECONDS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.cache_dir = Path(cache_dir) if cache_dir is not None else default_runtime_dir()
        self.base_url = _normalize_base_url(base_url)
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self.clock = clock or time.time

    @property
    def cache_path(self) -> Path:
        """Path of the token cache file."""
        return self.cache_dir / TOKEN_CACHE_FILENAME

    def is_stale(self) -> bool:
        """Check whether the cached token must be refreshed before use.

        Returns
        -------
        bool
            True if the cache file is missing or older than the TTL minus the
            refresh margin
        """
        try:
            issued_at = self.cache_path.stat().st_mtime
        except FileNotFoundError:
            return True

        age = self.clock() - issued_at
        return age > self.ttl_seconds - TOKEN_REFRESH_MARGIN_SECONDS

    def get_token(self) -> str:
        """Return a token valid for at least the refresh margin.

        Returns
        -------
        str
            Metadata session token

        Raises
        ------
        RuntimeDirectoryError
            If the cache directory cannot be created
        MetadataUnavailable
            If a new token is needed and the service does not issue one
        """
        ensure_private_dir(self.cache_dir)

        if not self.is_stale():
            try:
                token = self.cache_path.read_text()
            except FileNotFoundError:
                token = ""
            if token:
                return token
            logger.debug("Token cache %s is empty, refreshing", self.cache_path)

        token = self._issue_token()
        atomic_file_write(self.cache_path, token, mode=0o600)
        logger.debug("Cached new metadata token in %s", self.cache_path)
        return token

    def _issue_token(self) -> str:
        url = self.base_url + TOKEN_PATH
        try:
            response = self.session.put(
                url,
                headers={TOKEN_TTL_HEADER: str(self.ttl_seconds)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise MetadataUnavailable(f"Failed to obtain metadata token: {e}") from e

        token = response.text.strip()
        if not token:
            raise MetadataUnavailable("Metadata service returned an empty token")
        return token


class MetadataClient:
    """Authenticated reader for the instance metadata service.

    Identity values are resolved on first use and kept on the client object,
    so separate clients never share cached identity.

    Parameters
    ----------
    token_cache : TokenCache
        Source of session tokens
    session : requests.Session | None
        HTTP session for metadata reads. If None, shares the token cache session
    base_url : str | None
        Metadata service base URL. If None, uses the token cache base URL
    timeout : float | None
        Request timeout in seconds. If None, uses the token cache timeout
    """

    def __init__(
        self,
        token_cache: TokenCache,
        session: requests.Session | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.token_cache = token_cache
        self.session = session or token_cache.session
        self.base_url = _normalize_base_url(base_url or token_cache.base_url)
        self.timeout = timeout if timeout is not None else token_cache.timeout
        self._instance_id: InstanceId | None = None
        self._region: Region | None = None

    def resolve_url(self, path_or_url: str) -> str:
        """Turn a metadata path or URL into a URL on the metadata host.

        Parameters
        ----------
        path_or_url : str
            Path relative to the metadata base, or an absolute URL

        Returns
        -------
        str
            Absolute metadata URL

        Raises
        ------
        UsageError
            If an absolute URL does not start with the metadata base URL
        """
        if _URL_SCHEME.match(path_or_url) or path_or_url.startswith("//"):
            if not path_or_url.startswith(self.base_url):
                raise UsageError(
                    f"Refusing to send metadata token to {path_or_url!r}: "
                    f"URL must start with {self.base_url}"
                )
            return path_or_url

        return self.base_url + path_or_url.lstrip("/")

    def fetch(self, path_or_url: str) -> bytes:
        """Fetch a metadata document.

        Parameters
        ----------
        path_or_url : str
            Metadata path (e.g., 'latest/meta-data/instance-id') or absolute
            URL under the metadata base

        Returns
        -------
        bytes
            Raw response body

        Raises
        ------
        UsageError
            If the URL points outside the metadata service
        MetadataUnavailable
            On transport errors or error responses
        """
        url = self.resolve_url(path_or_url)
        token = self.token_cache.get_token()

        try:
            response = self.session.get(url, headers={TOKEN_HEADER: token}, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise MetadataUnavailable(f"Failed to fetch {url}: {e}") from e

        return response.content

    def instance_id(self) -> InstanceId:
        """Return the ID of the running instance.

        Raises
        ------
        IdentityError
            If the metadata value is not an instance ID
        """
        if self._instance_id is None:
            raw = self.fetch(INSTANCE_ID_PATH).decode("utf-8", errors="replace").strip()
            self._instance_id = InstanceId(raw)
        return self._instance_id

    def region(self) -> Region:
        """Return the region of the running instance.

        Raises
        ------
        IdentityError
            If the identity document is malformed or carries no valid region
        """
        if self._region is None:
            raw = self.fetch(IDENTITY_DOCUMENT_PATH)
            try:
                document = json.loads(raw)
            except ValueError as e:
                raise IdentityError(f"Malformed instance identity document: {e}") from e
            if not isinstance(document, dict):
                raise IdentityError("Instance identity document is not a JSON object")
            self._region = Region(document.get("region", ""))
        return self._region

    def identity(self) -> InstanceIdentity:
        """Return instance ID and region together."""
        return InstanceIdentity(instance_id=self.instance_id(), region=self.region())

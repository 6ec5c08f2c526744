"""Fake requests session standing in for the instance metadata service."""

import json
from typing import Any

import requests

METADATA_HOST = "http://169.254.169.254/"


def make_response(status_code: int, body: bytes, url: str = "") -> requests.Response:
    """Build a requests.Response with the given status and body."""
    response = requests.Response()
    response.status_code = status_code
    response._content = body
    response.url = url
    response.encoding = "utf-8"
    return response


class FakeMetadataSession:
    """Fake IMDSv2 endpoint with request recording.

    Parameters
    ----------
    instance_id : str
        Value served at latest/meta-data/instance-id
    region : str
        Region placed in the identity document
    token : str
        Token issued on PUT latest/api/token
    """

    def __init__(
        self,
        instance_id: str = "i-0abc1234def567890",
        region: str = "eu-west-1",
        token: str = "token-1",
    ) -> None:
        self.token = token
        self.documents: dict[str, bytes] = {
            "latest/meta-data/instance-id": instance_id.encode(),
            "latest/dynamic/instance-identity/document": json.dumps(
                {"instanceId": instance_id, "region": region}
            ).encode(),
        }
        self.put_calls: list[dict[str, Any]] = []
        self.get_calls: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None

    @property
    def call_count(self) -> int:
        """Total number of requests made."""
        return len(self.put_calls) + len(self.get_calls)

    def put(self, url: str, headers: dict[str, str] | None = None, timeout: Any = None) -> requests.Response:
        """Issue a token."""
        self.put_calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        if self.fail_with is not None:
            raise self.fail_with
        if url != METADATA_HOST + "latest/api/token":
            return make_response(404, b"", url)
        return make_response(200, self.token.encode(), url)

    def get(self, url: str, headers: dict[str, str] | None = None, timeout: Any = None) -> requests.Response:
        """Serve a metadata document when the token header is valid."""
        self.get_calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        if self.fail_with is not None:
            raise self.fail_with
        if (headers or {}).get("X-aws-ec2-metadata-token") != self.token:
            return make_response(401, b"", url)
        path = url[len(METADATA_HOST):] if url.startswith(METADATA_HOST) else None
        if path not in self.documents:
            return make_response(404, b"", url)
        return make_response(200, self.documents[path], url)

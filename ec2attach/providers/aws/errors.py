"""Translation of botocore exceptions into provider exceptions."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
)

from ec2attach.providers.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
)

logger = logging.getLogger(__name__)


@contextmanager
def handle_aws_errors() -> Iterator[None]:
    """Convert botocore errors raised in the block into provider errors.

    Yields
    ------
    None
        Control to the wrapped block

    Raises
    ------
    ProviderCredentialsError
        If credentials are missing or incomplete
    ProviderConnectionError
        If the EC2 endpoint cannot be reached or botocore fails otherwise
    ProviderAPIError
        If EC2 rejects the request
    """
    try:
        yield
    except (NoCredentialsError, PartialCredentialsError) as e:
        raise ProviderCredentialsError(str(e)) from e
    except EndpointConnectionError as e:
        raise ProviderConnectionError(str(e)) from e
    except ClientError as e:
        error = e.response.get("Error", {})
        error_code = error.get("Code")
        message = error.get("Message") or str(e)
        logger.debug("EC2 %s failed with %s: %s", e.operation_name, error_code, message)
        raise ProviderAPIError(
            message=message,
            error_code=error_code,
            operation=e.operation_name,
        ) from e
    except BotoCoreError as e:
        raise ProviderConnectionError(str(e)) from e

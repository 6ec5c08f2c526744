"""Provider-agnostic exceptions for cloud API failures."""


class ProviderError(Exception):
    """Base exception for cloud provider errors."""


class ProviderCredentialsError(ProviderError):
    """Raised when cloud credentials are missing or unusable."""


class ProviderConnectionError(ProviderError):
    """Raised when the cloud API endpoint cannot be reached."""


class ProviderAPIError(ProviderError):
    """Raised when the cloud API rejects a request.

    Parameters
    ----------
    message : str
        Error message
    error_code : str | None
        Provider error code (e.g., 'UnauthorizedOperation')
    operation : str | None
        Name of the API operation that failed
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.operation = operation

"""POS integration exceptions."""


class POSError(Exception):
    """Base exception for POS integration errors."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.message = message
        self.provider = provider
        super().__init__(message)


class UpstreamPOSError(POSError):
    """A call to the POS API failed (network error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, provider)
        self.status_code = status_code
        self.response_body = response_body


class POSAuthError(UpstreamPOSError):
    """Could not obtain an access token from the POS."""

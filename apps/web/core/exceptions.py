"""Order bridge exceptions, each mapped to one HTTP status at the view layer."""


class BridgeError(Exception):
    """Base exception for errors reported back to the webhook sender."""

    status_code = 400

    def __init__(self, message: str, city: str | None = None) -> None:
        self.message = message
        self.city = city
        super().__init__(message)


class ValidationError(BridgeError):
    """Request body is malformed or lacks a required field."""


class AuthError(BridgeError):
    """Shared webhook secret did not match."""

    status_code = 401

    def __init__(
        self,
        message: str = "Unauthorized",
        provided_hash: str = "",
        expected_hashes: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.provided_hash = provided_hash
        self.expected_hashes = expected_hashes or []


class UnknownTenantError(BridgeError):
    """No tenant configuration exists for the resolved city key."""


class UnmappedCatalogError(BridgeError):
    """No line item matched the catalog and no fallback product is configured."""


class CatalogSourceError(BridgeError):
    """The remote catalog mapping source could not be loaded."""

    status_code = 502

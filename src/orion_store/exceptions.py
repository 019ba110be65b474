"""Exception classes for orion-store operations."""


class OrionStoreError(Exception):
    """Base exception for orion-store operations."""

    error_prefix: str = "Operation failed"

    def __init__(self, message: str, target: str | None = None) -> None:
        """Initialize error with message and optional target.

        Args:
            message: Error message describing the failure.
            target: Optional name of the target that failed (URL, app id).

        """
        super().__init__(message)
        self.message = message
        self.target = target

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.target:
            return f"{self.error_prefix} for '{self.target}': {self.message}"
        return f"{self.error_prefix}: {self.message}"


class FetchError(OrionStoreError):
    """Raised when a remote fetch fails (connection, timeout, status)."""

    error_prefix = "Fetch failed"


class FetchTimeoutError(FetchError):
    """Raised when a request exceeds its timeout."""

    error_prefix = "Request timed out"


class FetchStatusError(FetchError):
    """Raised when a response carries a non-2xx status."""

    error_prefix = "Request failed"

    def __init__(
        self, message: str, target: str | None = None, status: int = 0
    ) -> None:
        super().__init__(message, target)
        self.status = status


class DataMalformedError(OrionStoreError):
    """Raised when a payload cannot be parsed or fails validation."""

    error_prefix = "Malformed data"


class CatalogError(OrionStoreError):
    """Raised when no catalog can be produced."""

    error_prefix = "Failed to load apps"


class ConfigurationError(OrionStoreError):
    """Raised when local configuration is invalid."""

    error_prefix = "Configuration error"


class NativeCapabilityError(OrionStoreError):
    """Raised when a native download/install/delete call fails."""

    error_prefix = "Native operation failed"


class CorruptedFileError(NativeCapabilityError):
    """Raised when the package file cannot be parsed by the installer."""

    error_prefix = "File corrupted"


class PermissionRequiredError(NativeCapabilityError):
    """Raised when the OS requires the install-unknown-apps permission."""

    error_prefix = "Permission required"


class InsufficientStorageError(NativeCapabilityError):
    """Raised when the device has no room for the download."""

    error_prefix = "Not enough space on device"


_NATIVE_ERROR_MARKERS: tuple[tuple[tuple[str, ...], type], ...] = (
    (("CORRUPT", "PARSE_ERROR"), CorruptedFileError),
    (("INSTALL_PERMISSION_REQUIRED",), PermissionRequiredError),
    (("INSUFFICIENT_STORAGE",), InsufficientStorageError),
)


def classify_native_error(
    error: BaseException, target: str | None = None
) -> NativeCapabilityError:
    """Map a raw native bridge failure to its typed error class.

    Classification is driven by the marker strings the native layer puts
    in its rejection messages.

    Args:
        error: Exception raised by the native bridge.
        target: Optional app id or file name for the message.

    Returns:
        The matching NativeCapabilityError subclass instance (the error
        itself when it is already classified).

    """
    if isinstance(error, NativeCapabilityError):
        return error
    message = str(error) or error.__class__.__name__
    for markers, error_cls in _NATIVE_ERROR_MARKERS:
        if any(marker in message for marker in markers):
            return error_cls(message, target)
    return NativeCapabilityError(message, target)

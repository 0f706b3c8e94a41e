"""
Custom error classes for the Financeiro engine.
Structured error handling with error codes across all modules.

Hierarchy:
    FinanceError
    ├── APIError
    │   ├── APITimeoutError
    │   └── MalformedResponseError
    ├── DataError
    │   ├── ConfigError
    │   ├── SchemaValidationError
    │   └── DataFetchError
    └── StorageError
"""


class FinanceError(Exception):
    """Base exception for all Financeiro engine errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- API Errors ---

class APIError(FinanceError):
    """Base class for external inference-service errors."""

    def __init__(self, message: str, code: str = "API_ERROR",
                 provider: str = None, **kwargs):
        self.provider = provider
        details = {"provider": provider, **kwargs}
        super().__init__(message, code=code, details=details)


class APITimeoutError(APIError):
    """Inference call timed out."""

    def __init__(self, provider: str, timeout: float):
        super().__init__(
            f"Inference call timed out after {timeout}s ({provider})",
            code="API_TIMEOUT", provider=provider, timeout=timeout,
        )


class MalformedResponseError(APIError):
    """Inference service answered with something we cannot parse."""

    def __init__(self, message: str, provider: str = None):
        super().__init__(message, code="API_MALFORMED", provider=provider)


# --- Data Errors ---

class DataError(FinanceError):
    """Base class for data processing errors."""
    pass


class ConfigError(DataError):
    """Invalid configuration value."""

    def __init__(self, message: str, setting: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"setting": setting},
        )


class SchemaValidationError(DataError):
    """A data-store row doesn't match the expected record schema."""

    def __init__(self, message: str, table: str = None, row_id: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID",
            details={"table": table, "row_id": row_id},
        )


class DataFetchError(DataError):
    """Failed to fetch records from the data store."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )


# --- Storage Errors ---

class StorageError(FinanceError):
    """Key-value persistence unavailable or unreadable."""

    def __init__(self, message: str, key: str = None):
        super().__init__(message, code="STORAGE_ERROR", details={"key": key})

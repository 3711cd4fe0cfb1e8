"""Domain exceptions for multi-tenant database routing.

Strategy and adapter errors propagate unmodified through the facade.
Only the HTTP middleware converts them into responses.
"""


class TenantDBError(Exception):
    """Base exception for tenantdb operations."""

    pass


class ConfigurationError(TenantDBError):
    """Raised when construction input is missing or invalid.

    Fatal: raised synchronously while building a TenantDatabase.
    """

    pass


class InvalidTenantIdError(TenantDBError):
    """Raised when a tenant identifier is empty or malformed.

    Always raised before any I/O is attempted.
    """

    def __init__(self, message: str, tenant_id: str | None = None):
        super().__init__(message)
        self.tenant_id = tenant_id


class TenantNotFoundError(TenantDBError):
    """Raised when an operation references a tenant that does not exist."""

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant '{tenant_id}' not found")
        self.tenant_id = tenant_id


class TenantAlreadyExistsError(TenantDBError):
    """Raised when creating a tenant whose database already exists."""

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant '{tenant_id}' already exists")
        self.tenant_id = tenant_id


class DatabaseConnectionError(TenantDBError):
    """Raised when the underlying driver cannot establish a connection.

    Not retried by this library; retry policy belongs to the caller.
    """

    pass


class TenantIsolationError(TenantDBError):
    """Raised when a write through a scoped handle names another tenant."""

    def __init__(self, expected: str, actual: object):
        super().__init__(
            f"Write scoped to tenant '{expected}' references tenant '{actual}'"
        )
        self.expected = expected
        self.actual = actual

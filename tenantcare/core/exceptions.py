"""
Exception taxonomy for tenant routing and onboarding.

Every error raised by the registry, the connection cache, the model factory
and the tenant resolver derives from TenancyError so the API layer can map
the whole family to HTTP responses in one place. Messages never contain
credentials or full connection URLs.
"""


class TenancyError(Exception):
    """Base exception for tenant registry, routing and onboarding failures."""

    pass


class InvalidInputError(TenancyError):
    """Raised when user-supplied onboarding data fails validation."""

    pass


class ConflictError(TenancyError):
    """Raised on uniqueness violations (clinic slug, owner email, user email)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class JoinCodeExhaustedError(ConflictError):
    """Raised when no unused join code could be drawn within the attempt cap."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Could not generate a unique clinic code after {attempts} attempts", field="join_code")


class NotFoundError(TenancyError):
    """Raised when a join code, slug or locator does not resolve to an active tenant."""

    pass


class TenantConnectionError(TenancyError):
    """Raised when a tenant database cannot be reached in time."""

    def __init__(self, locator: str, message: str) -> None:
        self.locator = locator
        super().__init__(f"Connection to tenant store '{locator}' failed: {message}")


class SchemaBindingError(TenancyError):
    """Raised when binding the entity schema to a tenant connection fails."""

    def __init__(self, locator: str, message: str) -> None:
        self.locator = locator
        super().__init__(f"Schema binding failed for tenant store '{locator}': {message}")


class UnauthenticatedError(TenancyError):
    """Raised when the caller identity cannot be established for a request."""

    pass


class ForbiddenError(TenancyError):
    """Raised when an authenticated caller is not allowed to perform an action."""

    pass


class NoTenantAttachedError(TenancyError):
    """Raised by handlers that need tenant data when the context carries none."""

    def __init__(self, message: str = "No clinic is attached to this session") -> None:
        super().__init__(message)

"""Error taxonomy shared by the access-control layer, the stores and the generator.

Each class maps to one caller decision: re-authenticate, upgrade, keep talking,
or retry the generation. Route handlers in main.py translate them into HTTP responses.
"""


class CareerMirrorError(Exception):
    """Base class for all domain errors."""

    code = "error"

    def __init__(self, message: str = "") -> None:
        self.message = message or (self.__doc__ or self.code).strip()
        super().__init__(self.message)


class Unauthenticated(CareerMirrorError):
    """Authentication required."""

    code = "unauthenticated"


class InvalidCredentials(Unauthenticated):
    """Invalid credentials."""

    code = "invalid_credentials"


class SessionExpired(CareerMirrorError):
    """Session expired. Please login again."""

    code = "session_expired"


class Forbidden(CareerMirrorError):
    """Access denied: you do not own this resource."""

    code = "forbidden"


class NotFoundOrForbidden(CareerMirrorError):
    """Resource not found or access denied."""

    code = "not_found"


class QuotaExceeded(CareerMirrorError):
    """Plan limit reached."""

    code = "quota_exceeded"

    def __init__(self, plan: str, limit: int | None, upgrade_available: bool = True) -> None:
        super().__init__(f"The {plan} plan allows {limit} active resume(s). Upgrade to create more.")
        self.plan = plan
        self.limit = limit
        self.upgrade_available = upgrade_available


class InsufficientInput(CareerMirrorError):
    """The conversation is too short to generate from."""

    code = "insufficient_input"


class GenerationFailed(CareerMirrorError):
    """Failed to generate resume data. Please try again."""

    code = "generation_failed"


class DuplicateUser(CareerMirrorError):
    """User already exists."""

    code = "duplicate_user"


class StorageError(CareerMirrorError):
    """Storage backend unavailable."""

    code = "storage_unavailable"

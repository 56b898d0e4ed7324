"""Error taxonomy for the editing engine.

Every error raised by the engine derives from :class:`PolishError` and carries
a stable ``code`` that tool responses and notices use to identify it.
None of these errors is fatal to the hosting process; the session
coordinator converts them into notices and returns to a stable state.
"""

from typing import Optional


class PolishError(Exception):
    """Base exception for all engine errors."""

    code: str = "polish_error"

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        data = {"error": self.message, "error_code": self.code}
        if self.detail:
            data["detail"] = self.detail
        return data


class UnsafeTargetError(PolishError):
    """Raised when the operator tries to target a protected node."""

    code = "unsafe_target"


class AddressResolutionError(PolishError):
    """Raised when an address no longer resolves to exactly one node."""

    code = "address_resolution"


class PatchValidationError(PolishError):
    """Raised when a generative response is malformed or unusable."""

    code = "patch_validation"


class TransportTimeoutError(PolishError):
    """Raised when the generative service does not answer in time."""

    code = "transport_timeout"


class TransportFailure(PolishError):
    """Raised when the generative request fails for any other reason."""

    code = "transport_failure"


class StorageError(PolishError):
    """Raised when a persistent store read or write fails."""

    code = "storage_error"


class CredentialMissingError(PolishError):
    """Raised when no credential is configured for the generative service."""

    code = "credential_missing"


class InvalidCredentialError(PolishError):
    """Raised when a credential does not match the provider's key format."""

    code = "invalid_credential"


class BaselineImmutableError(PolishError):
    """Raised on attempts to save over, rename or delete the baseline."""

    code = "baseline_immutable"


class ProjectNotFoundError(PolishError):
    """Raised when a project id is unknown for the origin."""

    code = "project_not_found"


class SessionBusyError(PolishError):
    """Raised when an operation would overlap a request or project switch."""

    code = "session_busy"


class StyleSheetAccessError(PolishError):
    """Raised when a style sheet cannot be inspected (e.g. unreadable link)."""

    code = "stylesheet_access"


class PointerListenerBusyError(PolishError):
    """Raised when a second owner tries to attach pointer listeners."""

    code = "pointer_listener_busy"


class InvalidInstructionError(PolishError):
    """Raised when an instruction is too short to act on."""

    code = "invalid_instruction"

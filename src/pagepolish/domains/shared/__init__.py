"""Shared kernel and error taxonomy for all bounded contexts."""

from .errors import (
    AddressResolutionError,
    BaselineImmutableError,
    CredentialMissingError,
    InvalidCredentialError,
    InvalidInstructionError,
    PatchValidationError,
    PointerListenerBusyError,
    PolishError,
    ProjectNotFoundError,
    SessionBusyError,
    StorageError,
    StyleSheetAccessError,
    TransportFailure,
    TransportTimeoutError,
    UnsafeTargetError,
)
from .events import EventCollector, EventPublisherProtocol
from .kernel import (
    BASELINE_ID,
    BASELINE_NAME,
    CONTROL_SURFACE_ATTR,
    CONTROL_SURFACE_ATTR_PREFIX,
    InteractionMode,
    OriginKey,
    normalize_origin,
    now_millis,
    random_suffix,
)

__all__ = [
    "EventCollector",
    "EventPublisherProtocol",
    "AddressResolutionError",
    "BaselineImmutableError",
    "CredentialMissingError",
    "InvalidCredentialError",
    "InvalidInstructionError",
    "PatchValidationError",
    "PointerListenerBusyError",
    "PolishError",
    "ProjectNotFoundError",
    "SessionBusyError",
    "StorageError",
    "StyleSheetAccessError",
    "TransportFailure",
    "TransportTimeoutError",
    "UnsafeTargetError",
    "BASELINE_ID",
    "BASELINE_NAME",
    "CONTROL_SURFACE_ATTR",
    "CONTROL_SURFACE_ATTR_PREFIX",
    "InteractionMode",
    "OriginKey",
    "normalize_origin",
    "now_millis",
    "random_suffix",
]

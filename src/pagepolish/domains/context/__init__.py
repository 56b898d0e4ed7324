"""Context Domain - bounded descriptions of targets for generative requests."""

from .services import ContextSnapshotter
from .value_objects import (
    NO_OP_STYLE_VALUES,
    RELEVANT_STYLE_PROPERTIES,
    ContextSnapshot,
    RelevantDom,
    SnapshotLimits,
)

__all__ = [
    "ContextSnapshotter",
    "NO_OP_STYLE_VALUES",
    "RELEVANT_STYLE_PROPERTIES",
    "ContextSnapshot",
    "RelevantDom",
    "SnapshotLimits",
]

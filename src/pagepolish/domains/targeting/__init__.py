"""Targeting Domain - Bounded Context for node selection.

Turns hover and click activity into a single committed Target with a
stable Address:

- Value Objects: Address, HighlightStyle
- Entities: Target
- Aggregates: TargetResolver (selection mode, highlights, commit)
- Services: SafetyPolicy, AddressGenerator
- Domain Events: SelectionModeEntered/Exited, TargetCommitted/Rejected/Cleared

Example usage:
    from pagepolish.domains.targeting import TargetResolver

    resolver = TargetResolver(document)
    resolver.enter_selection_mode()
    target = resolver.on_commit(node)
    print(target.address)  # "#title"
"""

from .aggregates import TargetResolver
from .entities import Target
from .events import (
    SelectionModeEntered,
    SelectionModeExited,
    TargetCleared,
    TargetCommitted,
    TargetRejected,
)
from .services import AddressGenerator, SafetyPolicy
from .value_objects import HOVER_HIGHLIGHT, SELECTED_HIGHLIGHT, Address, HighlightStyle

__all__ = [
    "TargetResolver",
    "Target",
    "SelectionModeEntered",
    "SelectionModeExited",
    "TargetCleared",
    "TargetCommitted",
    "TargetRejected",
    "AddressGenerator",
    "SafetyPolicy",
    "HOVER_HIGHLIGHT",
    "SELECTED_HIGHLIGHT",
    "Address",
    "HighlightStyle",
]

"""Session Domain - the coordinator state machine for one editing session.

- Value Objects: SessionState, Notice, OperationBudget, SubmissionResult,
  RelevanceAnalysis
- Aggregates: SessionCoordinator
- Services: GenerativeService (port), CredentialVault, validate_credential
- Domain Events: SessionStateChanged, InstructionCompleted, SubmissionRejected
"""

from .aggregates import MIN_INSTRUCTION_LENGTH, SessionCoordinator
from .events import InstructionCompleted, SessionStateChanged, SubmissionRejected
from .services import (
    CREDENTIAL_KEY,
    CredentialVault,
    GenerativeService,
    validate_credential,
)
from .value_objects import (
    FAST_BUDGET_SECONDS,
    OPERATION_BUDGETS,
    SUBMIT_BUDGET_SECONDS,
    Notice,
    OperationBudget,
    RelevanceAnalysis,
    SessionState,
    SubmissionResult,
)

__all__ = [
    "MIN_INSTRUCTION_LENGTH",
    "SessionCoordinator",
    "InstructionCompleted",
    "SessionStateChanged",
    "SubmissionRejected",
    "CREDENTIAL_KEY",
    "CredentialVault",
    "GenerativeService",
    "validate_credential",
    "FAST_BUDGET_SECONDS",
    "OPERATION_BUDGETS",
    "SUBMIT_BUDGET_SECONDS",
    "Notice",
    "OperationBudget",
    "RelevanceAnalysis",
    "SessionState",
    "SubmissionResult",
]

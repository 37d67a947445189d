"""Reconciliation engine: matching, tracker merging, execution and coordination."""

from .coordinator import OutcomeStatus, ReconciliationCoordinator, RunReport, UnitOutcome
from .executor import ActionExecutor, ExecutionResult
from .locks import FingerprintLocks
from .matcher import CandidateMatcher, MatchResult

__all__ = [
    "ActionExecutor",
    "CandidateMatcher",
    "ExecutionResult",
    "FingerprintLocks",
    "MatchResult",
    "OutcomeStatus",
    "ReconciliationCoordinator",
    "RunReport",
    "UnitOutcome",
]

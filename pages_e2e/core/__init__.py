"""Core framework components."""

from .enums import BindingKind, Environment, StageStatus, Trigger
from .polling import Completion, CompletionState, Poller, RecurringTimer

__all__ = [
    "BindingKind",
    "Environment",
    "StageStatus",
    "Trigger",
    "Completion",
    "CompletionState",
    "Poller",
    "RecurringTimer",
]

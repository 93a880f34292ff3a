"""Durable autosave of workflow snapshots."""

from .controller import AutosaveController, AutosaveState, AutosaveStatus, SaveOutcome
from .promotion import PromotionItem, PromotionQueue
from .snapshot import WORKFLOWS_TABLE, WorkflowSnapshot

__all__ = [
    "AutosaveController",
    "AutosaveState",
    "AutosaveStatus",
    "SaveOutcome",
    "PromotionItem",
    "PromotionQueue",
    "WORKFLOWS_TABLE",
    "WorkflowSnapshot",
]

"""Adaptation workflow state machine."""

from .state_machine import (
    PHASES,
    AdaptationWorkflow,
    PhaseDefinition,
    PhaseTransition,
    PhaseView,
)

__all__ = [
    "PHASES",
    "AdaptationWorkflow",
    "PhaseDefinition",
    "PhaseTransition",
    "PhaseView",
]

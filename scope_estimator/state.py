"""In-memory state record for the estimate refinement workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .errors import EstimatorError
from .models import Action, ActionStatus, SourceDocument


class Phase(str, Enum):
    IDLE = "idle"
    INGESTING = "ingesting"
    READY = "ready"
    REGENERATING = "regenerating"


@dataclass
class ActionState:
    status: ActionStatus = ActionStatus.IDLE
    reason: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.status is ActionStatus.IN_FLIGHT


def _initial_actions() -> Dict[Action, ActionState]:
    return {action: ActionState() for action in Action}


@dataclass
class WorkflowState:
    """Single source of truth for one session.

    Only ``EstimateWorkflow`` mutates this record; everything else reads it.
    """

    document: Optional[SourceDocument] = None
    estimate_text: str = ""
    feedback_text: str = ""
    actions: Dict[Action, ActionState] = field(default_factory=_initial_actions)
    last_error: Optional[EstimatorError] = None

    @property
    def ingesting(self) -> bool:
        return self.actions[Action.INGEST].in_flight

    @property
    def regenerating(self) -> bool:
        return self.actions[Action.REGENERATE].in_flight

    @property
    def exporting(self) -> bool:
        return self.actions[Action.EXPORT].in_flight

    @property
    def has_estimate(self) -> bool:
        return bool(self.estimate_text)

    @property
    def phase(self) -> Phase:
        # Exporting is orthogonal and never changes the phase.
        if self.ingesting:
            return Phase.INGESTING
        if self.regenerating:
            return Phase.REGENERATING
        if self.has_estimate:
            return Phase.READY
        return Phase.IDLE

    @property
    def can_generate(self) -> bool:
        return self.document is not None and not self.ingesting

    @property
    def can_regenerate(self) -> bool:
        return bool(self.feedback_text.strip()) and not self.regenerating

    @property
    def can_export(self) -> bool:
        return self.has_estimate and not self.exporting

    def status_of(self, action: Action) -> ActionState:
        return self.actions[action]

    def mark_in_flight(self, action: Action) -> None:
        self.actions[action] = ActionState(ActionStatus.IN_FLIGHT)

    def mark_idle(self, action: Action) -> None:
        self.actions[action] = ActionState(ActionStatus.IDLE)

    def mark_failed(self, action: Action, error: EstimatorError) -> None:
        self.actions[action] = ActionState(ActionStatus.FAILED, str(error))
        self.last_error = error


__all__ = ["ActionState", "Phase", "WorkflowState"]

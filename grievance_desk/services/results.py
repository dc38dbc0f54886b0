"""
Result types returned by state-changing service operations.

Best-effort side effects (points award, notifications) never raise; their
failures are listed in ``side_effect_failures`` so callers can surface them.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SideEffectFailure:
    """A non-fatal failure of a follow-up action after the primary commit."""

    effect: str          # "award_points" | "notify"
    message: str
    entity_type: str = ""
    entity_id: int | None = None

    def to_dict(self):
        return {
            "effect": self.effect,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
        }


@dataclass
class StepCompletionResult:
    step: object
    task: object
    task_completed: bool
    points_awarded: int | None = None
    side_effect_failures: list[SideEffectFailure] = field(default_factory=list)

    def to_dict(self, task_dict: dict | None = None):
        return {
            "step": self.step.to_dict(),
            "task": task_dict if task_dict is not None else self.task.to_dict(),
            "task_completed": self.task_completed,
            "points_awarded": self.points_awarded,
            "side_effect_failures": [f.to_dict() for f in self.side_effect_failures],
        }


@dataclass
class TaskCompletionResult:
    task: object
    points_awarded: int | None = None
    side_effect_failures: list[SideEffectFailure] = field(default_factory=list)

    def to_dict(self, task_dict: dict | None = None):
        return {
            "task": task_dict if task_dict is not None else self.task.to_dict(),
            "points_awarded": self.points_awarded,
            "side_effect_failures": [f.to_dict() for f in self.side_effect_failures],
        }


@dataclass
class EventCreationResult:
    event: object
    side_effect_failures: list[SideEffectFailure] = field(default_factory=list)

    def to_dict(self):
        return {
            "event": self.event.to_dict(),
            "side_effect_failures": [f.to_dict() for f in self.side_effect_failures],
        }


@dataclass
class ApprovalDecisionResult:
    event: object
    record: object
    side_effect_failures: list[SideEffectFailure] = field(default_factory=list)

    def to_dict(self):
        return {
            "event": self.event.to_dict(),
            "approval": self.record.to_dict(),
            "side_effect_failures": [f.to_dict() for f in self.side_effect_failures],
        }

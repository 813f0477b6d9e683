"""
Pipeline definition schemas - artifacts, actions and stages.

An Artifact is a named, opaque bundle flowing between stages. It is shared by
value between the action that produces it and every action that consumes it.

An Action is one unit of work inside a stage. Actions are immutable once built.

A Stage is a named, ordered phase holding actions. Stages are appended to while
a pipeline is being described and are never removed.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .action_kinds import ActionKind


@dataclass(frozen=True)
class Artifact:
    """
    A named artifact bundle.

    Attributes:
        name: Artifact name, used by the platform to wire stage inputs/outputs
    """
    name: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the platform's artifact reference shape."""
        return {"Name": self.name}


@dataclass(frozen=True)
class Action:
    """
    A single action within a stage.

    Attributes:
        name: Action name (uniqueness within a stage is checked by the platform)
        kind: The action kind (from ActionKind enum)
        inputs: Artifacts consumed by the action
        outputs: Artifacts produced by the action
        configuration: Target-specific configuration passed through to the platform
        run_order: Optional sequencing number; equal values may run in parallel,
            None leaves ordering to the platform (append order)
    """
    name: str
    kind: ActionKind
    inputs: tuple[Artifact, ...] = field(default_factory=tuple)
    outputs: tuple[Artifact, ...] = field(default_factory=tuple)
    configuration: dict[str, Any] = field(default_factory=dict)
    run_order: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the platform's action declaration."""
        return {
            "Name": self.name,
            "ActionTypeId": self.kind.action_type_id,
            "Configuration": dict(self.configuration),
            "InputArtifacts": [a.to_dict() for a in self.inputs],
            "OutputArtifacts": [a.to_dict() for a in self.outputs],
            **({"RunOrder": self.run_order} if self.run_order is not None else {}),
        }


@dataclass
class Stage:
    """
    A named pipeline stage.

    Actions are kept in registration order. Execution order is decided by the
    platform from each action's run_order.
    """
    name: str
    actions: list[Action] = field(default_factory=list)

    def add_action(self, action: Action) -> Action:
        """Append an action and return it."""
        self.actions.append(action)
        return action

    def get_action(self, name: str) -> Optional[Action]:
        """Get the first action with this name."""
        for action in self.actions:
            if action.name == name:
                return action
        return None

    @property
    def action_names(self) -> list[str]:
        return [a.name for a in self.actions]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the platform's stage declaration."""
        return {
            "Name": self.name,
            "Actions": [a.to_dict() for a in self.actions],
        }

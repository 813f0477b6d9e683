"""
compactpipe.schemas - Data structures describing a deployment pipeline.

Pipeline -> Stage -> Action -> Artifact

- ActionKind: Taxonomy of actions (source, build, deploy, invoke)
- Artifact: Named bundle passed between stages
- Action: Unit of work with inputs, outputs, configuration and run order
- Stage: Named, ordered phase holding actions
"""

from .action_kinds import ActionCategory, ActionKind
from .pipeline_def import Action, Artifact, Stage

__all__ = [
    # Action kinds
    "ActionCategory",
    "ActionKind",
    # Pipeline definition
    "Action",
    "Artifact",
    "Stage",
]

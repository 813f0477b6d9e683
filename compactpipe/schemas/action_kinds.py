"""
ActionKind enum defining the action taxonomy for compactpipe.

Actions are categorized by the pipeline phase they belong to:
- source.*  -> pull stage: fetch a branch from version control
- build.*   -> build stage: run the build executor
- deploy.*  -> deploy stage: push an artifact to a deployment target
- invoke.*  -> deploy stage: call a function (code update, smoke invoke, invalidation)
"""

from enum import Enum
from typing import Any


class ActionCategory(str, Enum):
    """High-level action categories, as named by the deployment platform."""
    SOURCE = "Source"
    BUILD = "Build"
    DEPLOY = "Deploy"
    INVOKE = "Invoke"


_PREFIX_CATEGORIES = {
    "source": ActionCategory.SOURCE,
    "build": ActionCategory.BUILD,
    "deploy": ActionCategory.DEPLOY,
    "invoke": ActionCategory.INVOKE,
}

_PROVIDERS = {
    "source.codecommit": "CodeCommit",
    "build.codebuild": "CodeBuild",
    "deploy.s3": "S3",
    "deploy.ecs": "ECS",
    "deploy.codedeploy": "CodeDeploy",
    "invoke.update_code": "Lambda",
    "invoke.compute": "Lambda",
    "invoke.invalidation": "Lambda",
}


class ActionKind(str, Enum):
    """
    Enumeration of all actions a compact pipeline can hold.

    Naming convention: {category}.{target}

    Stage mapping:
    - source.* => pull
    - build.* => build
    - deploy.*, invoke.* => deploy
    """
    # Pull stage
    SOURCE_PULL = "source.codecommit"

    # Build stage
    BUILD_EXECUTE = "build.codebuild"

    # Deploy stage, direct deployment actions
    DEPLOY_STORAGE = "deploy.s3"
    DEPLOY_CONTAINER = "deploy.ecs"
    DEPLOY_HOST_GROUP = "deploy.codedeploy"

    # Deploy stage, function invocations
    UPDATE_FUNCTION_CODE = "invoke.update_code"
    DEPLOY_COMPUTE = "invoke.compute"
    INVOKE_INVALIDATOR = "invoke.invalidation"

    @property
    def category(self) -> ActionCategory:
        """Get the category of this action."""
        prefix = self.value.split(".")[0]
        return _PREFIX_CATEGORIES[prefix]

    @property
    def provider(self) -> str:
        """Get the platform provider that executes this action."""
        return _PROVIDERS[self.value]

    @property
    def action_type_id(self) -> dict[str, Any]:
        """
        Get the platform action type identifier.

        Returns:
            Mapping with Category, Owner, Provider and Version, as the
            deployment platform expects it in a pipeline document.
        """
        return {
            "Category": self.category.value,
            "Owner": "AWS",
            "Provider": self.provider,
            "Version": "1",
        }

    @property
    def is_deploy_kind(self) -> bool:
        """Check if this action belongs in the deploy stage."""
        return self.category in (ActionCategory.DEPLOY, ActionCategory.INVOKE)

    @classmethod
    def from_string(cls, value: str) -> "ActionKind":
        """Parse an ActionKind from its string value."""
        for kind in cls:
            if kind.value == value:
                return kind
        raise ValueError(f"Unknown action kind: {value}")

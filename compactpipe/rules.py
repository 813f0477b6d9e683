"""
Event and notification rules attached to a compact pipeline.

- repository_change_trigger_rule: start the pipeline when its branch changes
- slack_notification_rule: forward pipeline execution events to a chat channel
"""

from typing import Any, Optional

from compactpipe.errors import ConfigurationError
from compactpipe.resources import DEFAULT_BRANCH, SourceRepository

PIPELINE_EXECUTION_EVENTS = (
    "codepipeline-pipeline-pipeline-execution-failed",
    "codepipeline-pipeline-pipeline-execution-canceled",
    "codepipeline-pipeline-pipeline-execution-started",
    "codepipeline-pipeline-pipeline-execution-resumed",
    "codepipeline-pipeline-pipeline-execution-succeeded",
    "codepipeline-pipeline-pipeline-execution-superseded",
)

MAX_RULE_NAME_LENGTH = 64


def repository_change_trigger_rule(
    repository: SourceRepository,
    pipeline_name: str,
    branch: Optional[str] = None,
) -> dict[str, Any]:
    """
    Build an event rule starting a pipeline on branch updates.

    Args:
        repository: Repository to watch
        pipeline_name: Pipeline started by the rule
        branch: Branch to watch (defaults to "master")

    Returns:
        Event rule declaration
    """
    if not pipeline_name:
        raise ConfigurationError("A pipeline name is required for a trigger rule")
    resources = [repository.repository_arn or repository.repository_name]
    return {
        "Description": f"Triggers when changes occur on the {repository.repository_name} repository",
        "State": "ENABLED",
        "EventPattern": {
            "source": ["aws.codecommit"],
            "detail-type": ["CodeCommit Repository State Change"],
            "resources": resources,
            "detail": {
                "event": ["referenceCreated", "referenceUpdated"],
                "referenceType": ["branch"],
                "referenceName": [branch or DEFAULT_BRANCH],
            },
        },
        "Targets": [{"Type": "CodePipeline", "Pipeline": pipeline_name}],
    }


def slack_notification_rule(
    rule_name: str,
    pipeline_name: str,
    chatbot_target: str,
) -> dict[str, Any]:
    """Build a notification rule sending every execution event to a Slack chatbot."""
    if not rule_name:
        raise ConfigurationError("A notification rule name is required")
    if not chatbot_target:
        raise ConfigurationError("A chatbot target is required for a notification rule")
    return {
        "Name": rule_name[:MAX_RULE_NAME_LENGTH],
        "DetailType": "BASIC",
        "EventTypeIds": list(PIPELINE_EXECUTION_EVENTS),
        "Resource": pipeline_name,
        "Status": "ENABLED",
        "Targets": [{"TargetType": "AWSChatbotSlack", "TargetAddress": chatbot_target}],
    }

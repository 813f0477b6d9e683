"""
Pipeline job events, as delivered to invoked functions.

The platform passes the job under event["CodePipeline.job"]; the action's
user parameters arrive as a JSON string.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from compactpipe.errors import ConfigurationError

JOB_EVENT_KEY = "CodePipeline.job"


@dataclass(frozen=True)
class PipelineJob:
    """
    A parsed pipeline job.

    Attributes:
        job_id: Job identifier used to report success or failure
        user_parameters: Decoded user parameters of the invoking action
        input_artifacts: Raw input artifact descriptors
    """
    job_id: str
    user_parameters: dict[str, Any] = field(default_factory=dict)
    input_artifacts: tuple[dict[str, Any], ...] = ()

    def input_location(self, index: int = 0) -> tuple[str, str]:
        """
        Get the (bucket, key) of an input artifact.

        Raises:
            ConfigurationError: If the artifact or its location is missing
        """
        try:
            location = self.input_artifacts[index]["location"]["s3Location"]
            return location["bucketName"], location["objectKey"]
        except (IndexError, KeyError, TypeError) as e:
            raise ConfigurationError(f"Job {self.job_id} has no input artifact location at {index}: {e}")


def parse_job(event: dict[str, Any]) -> PipelineJob:
    """
    Parse a pipeline job event.

    Raises:
        ConfigurationError: If the event is not a pipeline job or the user
            parameters are not a JSON object
    """
    try:
        job = event[JOB_EVENT_KEY]
        job_id = job["id"]
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"Not a pipeline job event: missing {e}")

    data = job.get("data") or {}
    raw_parameters: Optional[Any] = (
        data.get("actionConfiguration", {}).get("configuration", {}).get("UserParameters")
    )
    if raw_parameters is None:
        user_parameters: dict[str, Any] = {}
    elif isinstance(raw_parameters, dict):
        user_parameters = raw_parameters
    else:
        try:
            user_parameters = json.loads(raw_parameters)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Job {job_id}: user parameters are not valid JSON: {e}")
        if not isinstance(user_parameters, dict):
            raise ConfigurationError(f"Job {job_id}: user parameters must be a JSON object")

    return PipelineJob(
        job_id=job_id,
        user_parameters=user_parameters,
        input_artifacts=tuple(data.get("inputArtifacts") or ()),
    )

"""
Invalidation function handler.

Invoked from the deploy stage after files are copied to the website bucket.
Reads the distribution id from the action's user parameters, purges every
path of the distribution and reports the job result.
"""

import logging
import time
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from compactpipe.errors import ConfigurationError

from .job import parse_job

logger = logging.getLogger(__name__)

INVALIDATION_PATHS = ["/*"]


def create_invalidation(cloudfront: Any, distribution_id: str) -> str:
    """
    Purge all paths of a distribution.

    Returns:
        The invalidation id
    """
    response = cloudfront.create_invalidation(
        DistributionId=distribution_id,
        InvalidationBatch={
            "CallerReference": f"invalidate-after-s3-{int(time.time() * 1000)}",
            "Paths": {"Quantity": len(INVALIDATION_PATHS), "Items": list(INVALIDATION_PATHS)},
        },
    )
    return response["Invalidation"]["Id"]


def handler(
    event: dict[str, Any],
    context: Any,
    *,
    cloudfront: Optional[Any] = None,
    codepipeline: Optional[Any] = None,
) -> dict[str, Any]:
    job = parse_job(event)
    cloudfront = cloudfront or boto3.client("cloudfront")
    codepipeline = codepipeline or boto3.client("codepipeline")

    try:
        distribution_id = job.user_parameters.get("distributionId")
        if not distribution_id:
            raise ConfigurationError(f"Job {job.job_id}: missing distributionId user parameter")

        logger.info(f"Invalidating distribution: {distribution_id}")
        invalidation_id = create_invalidation(cloudfront, distribution_id)
    except (ClientError, ConfigurationError) as e:
        logger.error(f"Invalidation failed for job {job.job_id}: {e}")
        codepipeline.put_job_failure_result(
            jobId=job.job_id,
            failureDetails={
                "message": str(e),
                "type": "JobFailed",
                "externalExecutionId": getattr(context, "aws_request_id", ""),
            },
        )
        return {"statusCode": 500, "body": str(e)}

    codepipeline.put_job_success_result(jobId=job.job_id)
    return {"statusCode": 200, "body": invalidation_id}

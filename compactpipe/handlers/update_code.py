"""
Update-code function handler.

Invoked from the deploy stage with the build output as input artifact.
Points the target function (user parameter "LambdaName") at the artifact's
object and reports the job result. Failures are reported to the pipeline
instead of being raised, so the job fails fast rather than timing out.
"""

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from compactpipe.errors import ConfigurationError

from .job import parse_job

logger = logging.getLogger(__name__)


def handler(
    event: dict[str, Any],
    context: Any,
    *,
    lambda_client: Optional[Any] = None,
    codepipeline: Optional[Any] = None,
) -> dict[str, Any]:
    job = parse_job(event)
    lambda_client = lambda_client or boto3.client("lambda")
    codepipeline = codepipeline or boto3.client("codepipeline")

    try:
        function_name = job.user_parameters.get("LambdaName")
        if not function_name:
            raise ConfigurationError(f"Job {job.job_id}: missing LambdaName user parameter")
        bucket, key = job.input_location()

        logger.info(f"Updating code of {function_name} from s3://{bucket}/{key}")
        lambda_client.update_function_code(FunctionName=function_name, S3Bucket=bucket, S3Key=key)
    except (ClientError, ConfigurationError) as e:
        logger.error(f"Code update failed for job {job.job_id}: {e}")
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
    return {"statusCode": 200, "body": function_name}

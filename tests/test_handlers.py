"""Tests for the companion function handlers.

boto3 clients are replaced with MagicMock instances.
"""

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from compactpipe.errors import ConfigurationError
from compactpipe.handlers import PipelineJob, parse_job
from compactpipe.handlers import invalidation, update_code


def _job_event(user_parameters=None, input_artifacts=None, job_id="job-1"):
    configuration = {}
    if user_parameters is not None:
        configuration["UserParameters"] = user_parameters
    return {
        "CodePipeline.job": {
            "id": job_id,
            "data": {
                "actionConfiguration": {"configuration": configuration},
                "inputArtifacts": input_artifacts or [],
            },
        }
    }


def _artifact(bucket="artifact-bucket", key="build-output/abc.zip"):
    return {"name": "build-output", "location": {"s3Location": {"bucketName": bucket, "objectKey": key}}}


def _client_error(operation):
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)


@pytest.fixture
def context():
    ctx = MagicMock()
    ctx.aws_request_id = "request-1"
    return ctx


class TestParseJob:
    """Tests for parse_job."""

    def test_parses_json_user_parameters(self):
        job = parse_job(_job_event(json.dumps({"distributionId": "E123"})))

        assert job.job_id == "job-1"
        assert job.user_parameters == {"distributionId": "E123"}

    def test_accepts_decoded_user_parameters(self):
        job = parse_job(_job_event({"LambdaName": "fn"}))
        assert job.user_parameters == {"LambdaName": "fn"}

    def test_missing_user_parameters(self):
        assert parse_job(_job_event()).user_parameters == {}

    def test_missing_job_raises(self):
        with pytest.raises(ConfigurationError, match="Not a pipeline job"):
            parse_job({"Records": []})

    def test_missing_job_id_raises(self):
        with pytest.raises(ConfigurationError):
            parse_job({"CodePipeline.job": {"data": {}}})

    def test_invalid_json_raises(self):
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            parse_job(_job_event("{not json"))

    def test_non_object_json_raises(self):
        with pytest.raises(ConfigurationError, match="JSON object"):
            parse_job(_job_event("[1, 2]"))


class TestPipelineJob:
    """Tests for PipelineJob.input_location."""

    def test_input_location(self):
        job = PipelineJob("job-1", input_artifacts=(_artifact(),))
        assert job.input_location() == ("artifact-bucket", "build-output/abc.zip")

    def test_missing_input_raises(self):
        with pytest.raises(ConfigurationError, match="input artifact"):
            PipelineJob("job-1").input_location()


class TestInvalidationHandler:
    """Tests for the invalidation handler."""

    def test_invalidates_all_paths(self, context):
        cloudfront = MagicMock()
        cloudfront.create_invalidation.return_value = {"Invalidation": {"Id": "I-1"}}
        codepipeline = MagicMock()

        result = invalidation.handler(
            _job_event(json.dumps({"distributionId": "E123"})),
            context,
            cloudfront=cloudfront,
            codepipeline=codepipeline,
        )

        assert result == {"statusCode": 200, "body": "I-1"}
        kwargs = cloudfront.create_invalidation.call_args.kwargs
        assert kwargs["DistributionId"] == "E123"
        batch = kwargs["InvalidationBatch"]
        assert batch["Paths"] == {"Quantity": 1, "Items": ["/*"]}
        assert batch["CallerReference"].startswith("invalidate-after-s3-")
        codepipeline.put_job_success_result.assert_called_once_with(jobId="job-1")
        codepipeline.put_job_failure_result.assert_not_called()

    def test_reports_client_error(self, context):
        cloudfront = MagicMock()
        cloudfront.create_invalidation.side_effect = _client_error("CreateInvalidation")
        codepipeline = MagicMock()

        result = invalidation.handler(
            _job_event(json.dumps({"distributionId": "E123"})),
            context,
            cloudfront=cloudfront,
            codepipeline=codepipeline,
        )

        assert result["statusCode"] == 500
        details = codepipeline.put_job_failure_result.call_args.kwargs["failureDetails"]
        assert details["type"] == "JobFailed"
        assert details["externalExecutionId"] == "request-1"
        codepipeline.put_job_success_result.assert_not_called()

    def test_reports_missing_distribution(self, context):
        cloudfront = MagicMock()
        codepipeline = MagicMock()

        result = invalidation.handler(_job_event("{}"), context, cloudfront=cloudfront, codepipeline=codepipeline)

        assert result["statusCode"] == 500
        assert "distributionId" in result["body"]
        cloudfront.create_invalidation.assert_not_called()
        codepipeline.put_job_failure_result.assert_called_once()


class TestUpdateCodeHandler:
    """Tests for the update-code handler."""

    def test_updates_function_code(self, context):
        lambda_client = MagicMock()
        codepipeline = MagicMock()

        result = update_code.handler(
            _job_event(json.dumps({"LambdaName": "mvc-fn"}), [_artifact()]),
            context,
            lambda_client=lambda_client,
            codepipeline=codepipeline,
        )

        assert result == {"statusCode": 200, "body": "mvc-fn"}
        lambda_client.update_function_code.assert_called_once_with(
            FunctionName="mvc-fn", S3Bucket="artifact-bucket", S3Key="build-output/abc.zip"
        )
        codepipeline.put_job_success_result.assert_called_once_with(jobId="job-1")

    def test_reports_failure_instead_of_raising(self, context):
        lambda_client = MagicMock()
        lambda_client.update_function_code.side_effect = _client_error("UpdateFunctionCode")
        codepipeline = MagicMock()

        result = update_code.handler(
            _job_event(json.dumps({"LambdaName": "mvc-fn"}), [_artifact()]),
            context,
            lambda_client=lambda_client,
            codepipeline=codepipeline,
        )

        assert result["statusCode"] == 500
        codepipeline.put_job_failure_result.assert_called_once()
        assert codepipeline.put_job_failure_result.call_args.kwargs["jobId"] == "job-1"
        codepipeline.put_job_success_result.assert_not_called()

    def test_reports_missing_artifact(self, context):
        lambda_client = MagicMock()
        codepipeline = MagicMock()

        result = update_code.handler(
            _job_event(json.dumps({"LambdaName": "mvc-fn"})),
            context,
            lambda_client=lambda_client,
            codepipeline=codepipeline,
        )

        assert result["statusCode"] == 500
        lambda_client.update_function_code.assert_not_called()

    def test_reports_missing_lambda_name(self, context):
        lambda_client = MagicMock()
        codepipeline = MagicMock()

        result = update_code.handler(
            _job_event("{}", [_artifact()]), context, lambda_client=lambda_client, codepipeline=codepipeline
        )

        assert result["statusCode"] == 500
        assert "LambdaName" in result["body"]

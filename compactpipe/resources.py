"""
Resource references consumed by compact pipelines.

These are the collaborators a pipeline wires together: the source repository,
the build project, and the deployment targets (bucket, function, container
service, server deployment group, CDN distribution). They are plain references
carrying the defaults the deployment platform should apply; provisioning them
is the platform's job.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

DEFAULT_BRANCH = "master"

DEFAULT_STATIC_SITE_BUILD_SPEC: dict[str, Any] = {
    "version": "0.2",
    "phases": {
        "install": {"runtime-versions": {"nodejs": "12"}},
        "build": {"commands": ["npm install", "npm run build"]},
    },
    "artifacts": {"files": ["**/*"], "base-directory": "dist"},
    "cache": {"paths": ["/root/.m2/**/*", "/root/.npm/**/*"]},
}


class BucketAccessControl(str, Enum):
    """Canned access control lists applied to deployed objects."""
    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"
    AUTHENTICATED_READ = "authenticated-read"
    AWS_EXEC_READ = "aws-exec-read"
    BUCKET_OWNER_READ = "bucket-owner-read"
    BUCKET_OWNER_FULL_CONTROL = "bucket-owner-full-control"
    LOG_DELIVERY_WRITE = "log-delivery-write"


@dataclass(frozen=True)
class SourceHandle:
    """A repository pinned to a branch."""
    repository_name: str
    branch: str


@dataclass(frozen=True)
class SourceRepository:
    """Branch-addressable version control repository."""
    repository_name: str
    repository_arn: Optional[str] = None

    def resolve(self, branch: Optional[str] = None) -> SourceHandle:
        """
        Pin the repository to a branch.

        Args:
            branch: Branch name; None or empty falls back to DEFAULT_BRANCH

        Returns:
            SourceHandle for the branch
        """
        return SourceHandle(self.repository_name, branch or DEFAULT_BRANCH)


@dataclass(frozen=True)
class BuildProject:
    """
    Build executor reference with the compact build project defaults.

    Timeouts are in minutes.
    """
    project_name: str
    build_spec: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_STATIC_SITE_BUILD_SPEC))
    environment_variables: dict[str, str] = field(default_factory=dict)
    cache_bucket: Optional["Bucket"] = None
    timeout_minutes: int = 10
    queued_timeout_minutes: int = 5
    concurrent_build_limit: int = 1
    compute_type: str = "BUILD_GENERAL1_SMALL"
    privileged: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.project_name,
            "BuildSpec": self.build_spec,
            "EnvironmentVariables": dict(self.environment_variables),
            **({"CacheBucket": self.cache_bucket.bucket_name} if self.cache_bucket else {}),
            "TimeoutInMinutes": self.timeout_minutes,
            "QueuedTimeoutInMinutes": self.queued_timeout_minutes,
            "ConcurrentBuildLimit": self.concurrent_build_limit,
            "Environment": {"ComputeType": self.compute_type, "PrivilegedMode": self.privileged},
        }


@dataclass(frozen=True)
class Bucket:
    """Storage target."""
    bucket_name: str
    encrypted: bool = False
    enforce_ssl: bool = False
    block_public_access: bool = False
    destroy_on_removal: bool = False
    auto_delete_objects: bool = False
    expiration_days: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "BucketName": self.bucket_name,
            "Encrypted": self.encrypted,
            "EnforceSSL": self.enforce_ssl,
            "BlockPublicAccess": self.block_public_access,
            "DestroyOnRemoval": self.destroy_on_removal,
            "AutoDeleteObjects": self.auto_delete_objects,
            **({"ExpirationInDays": self.expiration_days} if self.expiration_days else {}),
        }


def secure_bucket(bucket_name: str, **overrides: Any) -> Bucket:
    """
    Create a bucket with the secure defaults applied.

    Encryption, SSL enforcement, public access blocking and clean removal are
    always on. Only auto_delete_objects and expiration_days can be overridden.
    """
    bucket = Bucket(
        bucket_name=bucket_name,
        encrypted=True,
        enforce_ssl=True,
        block_public_access=True,
        destroy_on_removal=True,
        auto_delete_objects=True,
    )
    allowed = {k: v for k, v in overrides.items() if k in ("auto_delete_objects", "expiration_days")}
    return replace(bucket, **allowed)


@dataclass(frozen=True)
class Function:
    """Compute target (serverless function)."""
    function_name: str


@dataclass(frozen=True)
class ContainerService:
    """Container target."""
    cluster_name: str
    service_name: str


@dataclass(frozen=True)
class ServerDeploymentGroup:
    """Host-group target."""
    application_name: str
    deployment_group_name: str


@dataclass(frozen=True)
class Distribution:
    """CDN distribution reference."""
    distribution_id: str


@dataclass(frozen=True)
class CompanionFunction:
    """
    A function provisioned alongside a pipeline to carry out a deploy step.

    Attributes:
        function_name: Function name
        handler: Dotted path of the handler, relative to the compactpipe package
        runtime: Function runtime identifier
        timeout_seconds: Invocation timeout
        log_retention_days: Retention of the function's log group
        policy_actions: Platform permissions the function needs
    """
    function_name: str
    handler: str
    runtime: str = "python3.12"
    timeout_seconds: int = 15
    log_retention_days: int = 1
    policy_actions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "FunctionName": self.function_name,
            "Handler": self.handler,
            "Runtime": self.runtime,
            "Timeout": self.timeout_seconds,
            "LogRetentionInDays": self.log_retention_days,
            "Policy": {
                "Effect": "Allow",
                "Action": list(self.policy_actions),
                "Resource": "*",
            },
        }


def invalidation_function(function_name: str) -> CompanionFunction:
    """Function that purges a CDN distribution from a pipeline job."""
    return CompanionFunction(
        function_name=function_name,
        handler="compactpipe.handlers.invalidation.handler",
        timeout_seconds=60,
        policy_actions=(
            "codepipeline:PutJobSuccessResult",
            "codepipeline:PutJobFailureResult",
            "cloudfront:CreateInvalidation",
        ),
    )


def update_code_function(function_name: str) -> CompanionFunction:
    """Function that pushes a build artifact into another function's code."""
    return CompanionFunction(
        function_name=function_name,
        handler="compactpipe.handlers.update_code.handler",
        timeout_seconds=15,
        policy_actions=(
            "codepipeline:PutJobSuccessResult",
            "codepipeline:PutJobFailureResult",
            "s3:Get*",
            "s3:List*",
            "lambda:UpdateFunctionCode",
        ),
    )

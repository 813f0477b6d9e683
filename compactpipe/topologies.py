"""
Ready-made deployment topologies.

- static_site_topology: single page app served from a bucket behind a CDN
- server_app_topology: server-rendered app on a function, static assets in a
  bucket, both behind a CDN

Each topology assembles a CompactPipeline plus the buckets, companion functions
and rules around it, and returns them as a Topology.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional, Union

from compactpipe.errors import ConfigurationError
from compactpipe.pipeline import CompactPipeline
from compactpipe.resources import (
    BucketAccessControl,
    Bucket,
    BuildProject,
    CompanionFunction,
    Distribution,
    Function,
    SourceRepository,
    invalidation_function,
    secure_bucket,
)
from compactpipe.rules import repository_change_trigger_rule, slack_notification_rule

logger = logging.getLogger(__name__)

DEFAULT_ASSETS_MAX_AGE = timedelta(days=31)
SITE_ASSETS_ARTIFACT_NAME = "siteAssets"

DEFAULT_SERVER_APP_BUILD_SPEC: dict[str, Any] = {
    "version": "0.2",
    "phases": {
        "install": {"runtime-versions": {"dotnet": "3.1"}},
        "build": {
            "commands": [
                "dotnet restore",
                "dotnet test",
                "dotnet publish -c release -o ./dist -r linux-x64 --no-self-contained",
            ]
        },
        "post_build": {
            "commands": [
                "cp -r dist/wwwroot distAssets",
                "rm -rf dist/wwwroot",
                "aws s3 rm s3://$StaticAssetsBucket --recursive",
            ]
        },
    },
    "artifacts": {
        "secondary-artifacts": {
            "build-output": {"files": ["**/*"], "base-directory": "dist"},
            SITE_ASSETS_ARTIFACT_NAME: {"files": ["**/*"], "base-directory": "distAssets"},
        }
    },
    "cache": {"paths": ["/root/.m2/**/*", "/root/.nuget/**/*"]},
}


@dataclass
class Topology:
    """A pipeline together with the resources deployed around it."""
    name: str
    pipeline: CompactPipeline
    buckets: dict[str, Bucket] = field(default_factory=dict)
    functions: dict[str, CompanionFunction] = field(default_factory=dict)
    rules: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the whole topology for JSON/YAML output."""
        functions = dict(self.functions)
        for fn in self.pipeline.companion_functions:
            functions.setdefault(fn.function_name, fn)
        return {
            "Name": self.name,
            "Pipeline": self.pipeline.to_dict(),
            "Buckets": {k: v.to_dict() for k, v in self.buckets.items()},
            "Functions": {k: v.to_dict() for k, v in functions.items()},
            "Rules": dict(self.rules),
        }


def acceptable_name(site_name: str) -> str:
    """Strip dots from a domain-like name so it can prefix resource names."""
    if not site_name:
        raise ConfigurationError("A site name is required")
    return site_name.replace(".", "")


def _attach_rules(
    topology: Topology,
    repository: SourceRepository,
    branch: Optional[str],
    chatbot_target: Optional[str],
) -> None:
    pipeline_name = topology.pipeline.pipeline_name
    topology.rules["change-trigger"] = repository_change_trigger_rule(repository, pipeline_name, branch)
    if chatbot_target:
        topology.rules["notifications"] = slack_notification_rule(
            f"{acceptable_name(topology.name)}-notifications", pipeline_name, chatbot_target
        )


def static_site_topology(
    site_name: str,
    repository: SourceRepository,
    *,
    distribution: Union[Distribution, str],
    branch: Optional[str] = None,
    bucket: Optional[Bucket] = None,
    build_project: Optional[BuildProject] = None,
    max_age: timedelta = DEFAULT_ASSETS_MAX_AGE,
    chatbot_target: Optional[str] = None,
) -> Topology:
    """
    Assemble a static site pipeline.

    Deploy stage:
        1. deploy-public-assets (bucket, run order 1)
        2. invalidate-cloudfront (run order 2)

    Args:
        site_name: Site domain, e.g. "example.com"
        repository: Repository holding the site sources
        distribution: CDN distribution serving the bucket
        branch: Branch to deploy (defaults to "master")
        bucket: Website bucket (defaults to a secure bucket named after the site)
        build_project: Build project (defaults to the static site build spec)
        max_age: Cache-Control max-age for the deployed files
        chatbot_target: Optional Slack chatbot receiving execution events

    Returns:
        The assembled Topology
    """
    prefix = acceptable_name(site_name)
    bucket = bucket or secure_bucket(f"{prefix}-website")
    artifacts_bucket = secure_bucket(f"{prefix}-artifacts", expiration_days=1)
    build_project = build_project or BuildProject(
        project_name=f"{prefix}-codebuild-project",
        environment_variables={"WebhostingBucket": bucket.bucket_name},
        cache_bucket=secure_bucket(f"{prefix}-codebuild-cache", expiration_days=14),
    )
    invalidator = invalidation_function(f"{prefix}-invalidation")

    pipeline = CompactPipeline(
        repository,
        build_project,
        branch=branch,
        artifact_store=artifacts_bucket,
        pipeline_name=f"{site_name.replace('.', '-')}-build-pipeline",
    )
    pipeline.add_deployment_to_s3(
        "deploy-public-assets",
        bucket,
        access_control=BucketAccessControl.PRIVATE,
        max_age=max_age,
        run_order=1,
    )
    pipeline.add_cloudfront_invalidation("invalidate-cloudfront", invalidator, distribution, run_order=2)

    topology = Topology(
        name=site_name,
        pipeline=pipeline,
        buckets={"website": bucket, "artifacts": artifacts_bucket},
        functions={invalidator.function_name: invalidator},
    )
    if build_project.cache_bucket:
        topology.buckets["build-cache"] = build_project.cache_bucket
    _attach_rules(topology, repository, branch, chatbot_target)

    logger.info(
        f"Assembled static site topology: {site_name}",
        extra={"event": "topology_assembled", "metadata": {"kind": "static_site"}},
    )
    return topology


def server_app_topology(
    app_name: str,
    repository: SourceRepository,
    *,
    function: Function,
    distribution: Union[Distribution, str],
    branch: Optional[str] = None,
    assets_bucket: Optional[Bucket] = None,
    build_project: Optional[BuildProject] = None,
    assets_artifact_name: str = SITE_ASSETS_ARTIFACT_NAME,
    max_age: timedelta = DEFAULT_ASSETS_MAX_AGE,
    chatbot_target: Optional[str] = None,
) -> Topology:
    """
    Assemble a server-rendered app pipeline.

    The build produces two artifacts: the function package (build output) and
    the static assets. Deploy stage:
        1. deploy-public-assets (assets artifact into the bucket, run order 1)
        1. deploy-mvc-lambda-update-code (build output into the function, run order 1)
        2. deploy-mvc-lambda (invoke the function, run order 2)
        2. invalidate-cloudfront (run order 2)
    """
    if function is None:
        raise ConfigurationError("A function is required for a server app topology")
    prefix = acceptable_name(app_name)
    assets_bucket = assets_bucket or secure_bucket(f"{prefix}-static-assets")
    artifacts_bucket = secure_bucket(f"{prefix}-artifacts", expiration_days=1)
    build_project = build_project or BuildProject(
        project_name=f"{prefix}-codebuild-project",
        build_spec=DEFAULT_SERVER_APP_BUILD_SPEC,
        environment_variables={"StaticAssetsBucket": assets_bucket.bucket_name},
        cache_bucket=secure_bucket(f"{prefix}-codebuild-cache", expiration_days=14),
    )
    invalidator = invalidation_function(f"{prefix}-invalidation")

    pipeline = CompactPipeline(
        repository,
        build_project,
        branch=branch,
        additional_output_artifacts=[assets_artifact_name],
        artifact_store=artifacts_bucket,
        pipeline_name=f"{app_name.replace('.', '-')}-build-pipeline",
    )
    pipeline.add_deployment_to_s3(
        "deploy-public-assets",
        assets_bucket,
        pipeline.get_artifact(assets_artifact_name),
        max_age=max_age,
        run_order=1,
    )
    pipeline.add_deployment_to_lambda("deploy-mvc-lambda", function, run_order=1)
    pipeline.add_cloudfront_invalidation("invalidate-cloudfront", invalidator, distribution, run_order=2)

    topology = Topology(
        name=app_name,
        pipeline=pipeline,
        buckets={"static-assets": assets_bucket, "artifacts": artifacts_bucket},
        functions={invalidator.function_name: invalidator},
    )
    if build_project.cache_bucket:
        topology.buckets["build-cache"] = build_project.cache_bucket
    _attach_rules(topology, repository, branch, chatbot_target)

    logger.info(
        f"Assembled server app topology: {app_name}",
        extra={"event": "topology_assembled", "metadata": {"kind": "server_app"}},
    )
    return topology

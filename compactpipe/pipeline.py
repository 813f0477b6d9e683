"""
CompactPipeline - pull -> build -> deploy pipeline builder.

A CompactPipeline is constructed from a source repository and a build project.
Construction wires two artifacts into two fixed stages:

    pull   : source action        -> "source" artifact
    build  : build action         "source" -> "build-output" (+ additional outputs)

Deployment registrations then append actions to a single "deploy" stage,
created lazily on the first registration and shared by every target kind:

    add_deployment_to_s3        storage target
    add_deployment_to_ec2       host-group target
    add_deployment_to_ecs       container target
    add_deployment_to_lambda    compute target (code update + invoke)
    add_cloudfront_invalidation CDN invalidator

Defaults are the same for every target: the input artifact is the pipeline's
build output unless one is given, and the run order is left unset unless one
is given.

This is a builder: the resulting document is executed by the deployment
platform, which also validates duplicate action names, artifact references
and run-order values.
"""

import json
import logging
from datetime import timedelta
from typing import Any, Iterable, Optional, Union

import yaml

from compactpipe.errors import ConfigurationError
from compactpipe.resources import (
    Bucket,
    BucketAccessControl,
    BuildProject,
    CompanionFunction,
    ContainerService,
    Distribution,
    Function,
    ServerDeploymentGroup,
    SourceRepository,
    update_code_function,
)
from compactpipe.schemas import Action, ActionKind, Artifact, Stage

logger = logging.getLogger(__name__)


PULL_STAGE_NAME = "pull"
BUILD_STAGE_NAME = "build"
DEPLOYMENT_STAGE_NAME = "deploy"

SOURCE_ARTIFACT_NAME = "source"
BUILD_OUTPUT_ARTIFACT_NAME = "build-output"

PULL_ACTION_NAME = "pull-from-codecommit"
BUILD_ACTION_NAME = "build-source-code"

UPDATE_CODE_FUNCTION_NAME = "update-function-code"
UPDATE_CODE_ACTION_SUFFIX = "-update-code"

DEFAULT_MAX_AGE = timedelta(days=7)


def _validate_action_name(action_name: Any) -> str:
    """
    Check that an action name is a non-empty string.

    Raises:
        ConfigurationError: If the name is not a string or is blank
    """
    if not isinstance(action_name, str) or not action_name.strip():
        raise ConfigurationError(f"Action name must be a non-empty string, got {action_name!r}")
    return action_name


def _require_target(target: Any, what: str) -> None:
    if target is None:
        raise ConfigurationError(f"A {what} is required for this deployment")


def _coerce_artifact(value: Union[Artifact, str]) -> Artifact:
    if isinstance(value, Artifact):
        return value
    if isinstance(value, str) and value:
        return Artifact(value)
    raise ConfigurationError(f"Output artifact must be an Artifact or a non-empty name, got {value!r}")


def _max_age_seconds(max_age: Union[timedelta, int]) -> int:
    if isinstance(max_age, timedelta):
        seconds = int(max_age.total_seconds())
    elif isinstance(max_age, int) and not isinstance(max_age, bool):
        seconds = max_age
    else:
        raise ConfigurationError(f"max_age must be a timedelta or seconds, got {max_age!r}")
    if seconds < 0:
        raise ConfigurationError(f"max_age must not be negative, got {seconds}s")
    return seconds


def _function_name(function: Union[Function, CompanionFunction, str]) -> str:
    if isinstance(function, (Function, CompanionFunction)):
        return function.function_name
    if isinstance(function, str) and function:
        return function
    raise ConfigurationError(f"Invalid function reference: {function!r}")


class CompactPipeline:
    """
    Three-phase deployment pipeline builder.

    Owns the ordered stage list and artifact wiring. Instances are not
    thread-safe and are meant to be built up from one construction sequence.

    Attributes:
        source_artifact: Output of the pull stage, input of the build stage
        build_output_artifact: Primary output of the build stage
        additional_output_artifacts: Extra build outputs supplied at construction
        update_code_function: Companion function pushing code into compute
            targets; created on the first Lambda registration
    """

    def __init__(
        self,
        source: Optional[SourceRepository],
        build_project: Optional[BuildProject],
        *,
        branch: Optional[str] = None,
        additional_output_artifacts: Optional[Iterable[Union[Artifact, str]]] = None,
        artifact_store: Optional[Bucket] = None,
        pipeline_name: Optional[str] = None,
    ):
        """
        Build the pull and build stages.

        Args:
            source: Repository to pull from
            build_project: Build executor run on the pulled source
            branch: Branch to pull (defaults to "master")
            additional_output_artifacts: Extra build outputs, as Artifacts or names
            artifact_store: Bucket holding artifacts between stages
            pipeline_name: Name of the pipeline in the rendered document

        Raises:
            ConfigurationError: If source or build_project is missing, or an
                additional artifact is invalid
        """
        if build_project is None:
            raise ConfigurationError("A build project is required to create a pipeline")
        if source is None:
            raise ConfigurationError("A source repository is required to create a pipeline")

        additional = tuple(_coerce_artifact(a) for a in (additional_output_artifacts or ()))

        self.pipeline_name = pipeline_name
        self.artifact_store = artifact_store
        self.source = source
        self.build_project = build_project
        self.source_handle = source.resolve(branch)

        self.source_artifact = Artifact(SOURCE_ARTIFACT_NAME)
        self.build_output_artifact = Artifact(BUILD_OUTPUT_ARTIFACT_NAME)
        self.additional_output_artifacts = additional
        self.update_code_function: Optional[CompanionFunction] = None

        self._stages: list[Stage] = [
            Stage(
                name=PULL_STAGE_NAME,
                actions=[
                    Action(
                        name=PULL_ACTION_NAME,
                        kind=ActionKind.SOURCE_PULL,
                        outputs=(self.source_artifact,),
                        configuration={
                            "RepositoryName": self.source_handle.repository_name,
                            "BranchName": self.source_handle.branch,
                        },
                    )
                ],
            ),
            Stage(
                name=BUILD_STAGE_NAME,
                actions=[
                    Action(
                        name=BUILD_ACTION_NAME,
                        kind=ActionKind.BUILD_EXECUTE,
                        inputs=(self.source_artifact,),
                        outputs=(self.build_output_artifact,) + additional,
                        configuration={"ProjectName": build_project.project_name},
                    )
                ],
            ),
        ]

        logger.debug(
            f"Created pipeline {pipeline_name or '<unnamed>'}: "
            f"{self.source_handle.repository_name}@{self.source_handle.branch} "
            f"-> {build_project.project_name} ({len(additional) + 1} build outputs)",
            extra={"event": "pipeline_created", "metadata": {"branch": self.source_handle.branch}},
        )

    # ------------------------------------------------------------------
    # Stages and artifacts
    # ------------------------------------------------------------------

    @property
    def stages(self) -> tuple[Stage, ...]:
        """Stages in pipeline order."""
        return tuple(self._stages)

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self._stages]

    def get_stage(self, name: str) -> Optional[Stage]:
        """Get a stage by name."""
        for stage in self._stages:
            if stage.name == name:
                return stage
        return None

    @property
    def has_deploy_stage(self) -> bool:
        return self.get_stage(DEPLOYMENT_STAGE_NAME) is not None

    @property
    def deploy_stage(self) -> Optional[Stage]:
        """The deploy stage, or None before the first registration."""
        return self.get_stage(DEPLOYMENT_STAGE_NAME)

    @property
    def artifacts(self) -> tuple[Artifact, ...]:
        """All artifacts the pipeline defines: source, build output, additional."""
        return (self.source_artifact, self.build_output_artifact) + self.additional_output_artifacts

    def get_artifact(self, name: str) -> Optional[Artifact]:
        """Get an artifact by name."""
        for artifact in self.artifacts:
            if artifact.name == name:
                return artifact
        return None

    @property
    def companion_functions(self) -> tuple[CompanionFunction, ...]:
        """Functions provisioned by the pipeline itself."""
        return (self.update_code_function,) if self.update_code_function else ()

    def _acquire_stage(self, name: str) -> Stage:
        """
        Find a stage by name, appending a new one if absent.

        Stage counts are tiny, so this is a linear scan.
        """
        stage = self.get_stage(name)
        if stage is None:
            stage = Stage(name=name)
            self._stages.append(stage)
            logger.debug(
                f"Added stage: {name}",
                extra={"event": "stage_added", "stage": name},
            )
        return stage

    def _acquire_deploy_stage(self) -> Stage:
        return self._acquire_stage(DEPLOYMENT_STAGE_NAME)

    def _append_deploy_actions(self, *actions: Action) -> None:
        """Append actions to the deploy stage, warning on names already used there."""
        stage = self._acquire_deploy_stage()
        for action in actions:
            if action.name in stage.action_names:
                # Rejected by the platform at provisioning time.
                logger.warning(
                    f"Duplicate action name in {stage.name} stage: {action.name}",
                    extra={"event": "duplicate_action_name", "stage": stage.name},
                )
            stage.add_action(action)
            logger.info(
                f"Registered {action.kind.value} action: {action.name}"
                + (f" (run order {action.run_order})" if action.run_order is not None else ""),
                extra={
                    "event": "action_registered",
                    "stage": stage.name,
                    "metadata": {"kind": action.kind.value, "run_order": action.run_order},
                },
            )

    # ------------------------------------------------------------------
    # Deployment registrations
    # ------------------------------------------------------------------

    def add_deployment_to_s3(
        self,
        action_name: str,
        destination: Bucket,
        artifact: Optional[Artifact] = None,
        *,
        access_control: BucketAccessControl = BucketAccessControl.PRIVATE,
        max_age: Union[timedelta, int] = DEFAULT_MAX_AGE,
        run_order: Optional[int] = None,
        extract: bool = True,
    ) -> Action:
        """
        Deploy an artifact into a bucket.

        Args:
            action_name: Name of the deploy action
            destination: Bucket receiving the files
            artifact: Artifact to deploy (defaults to the build output)
            access_control: Canned ACL set on the uploaded objects
            max_age: Cache-Control max-age, as timedelta or seconds
            run_order: Position within the deploy stage
            extract: Unpack the artifact into the bucket instead of uploading the archive

        Returns:
            The registered action

        Raises:
            ConfigurationError: If the name or max_age is invalid
        """
        _validate_action_name(action_name)
        _require_target(destination, "destination bucket")
        seconds = _max_age_seconds(max_age)
        try:
            acl = BucketAccessControl(access_control)
        except ValueError:
            raise ConfigurationError(f"Unknown access control: {access_control!r}")
        action = Action(
            name=action_name,
            kind=ActionKind.DEPLOY_STORAGE,
            inputs=(artifact or self.build_output_artifact,),
            configuration={
                "BucketName": destination.bucket_name,
                "Extract": "true" if extract else "false",
                "CannedACL": acl.value,
                "CacheControl": f"max-age={seconds}",
            },
            run_order=run_order,
        )
        self._append_deploy_actions(action)
        return action

    def add_deployment_to_ec2(
        self,
        action_name: str,
        deployment_group: ServerDeploymentGroup,
        artifact: Optional[Artifact] = None,
        *,
        run_order: Optional[int] = None,
    ) -> Action:
        """Deploy an artifact onto a server deployment group."""
        _validate_action_name(action_name)
        _require_target(deployment_group, "deployment group")
        action = Action(
            name=action_name,
            kind=ActionKind.DEPLOY_HOST_GROUP,
            inputs=(artifact or self.build_output_artifact,),
            configuration={
                "ApplicationName": deployment_group.application_name,
                "DeploymentGroupName": deployment_group.deployment_group_name,
            },
            run_order=run_order,
        )
        self._append_deploy_actions(action)
        return action

    def add_deployment_to_ecs(
        self,
        action_name: str,
        service: ContainerService,
        artifact: Optional[Artifact] = None,
        *,
        run_order: Optional[int] = None,
    ) -> Action:
        """Deploy an artifact (image definitions) to a container service."""
        _validate_action_name(action_name)
        _require_target(service, "container service")
        action = Action(
            name=action_name,
            kind=ActionKind.DEPLOY_CONTAINER,
            inputs=(artifact or self.build_output_artifact,),
            configuration={
                "ClusterName": service.cluster_name,
                "ServiceName": service.service_name,
            },
            run_order=run_order,
        )
        self._append_deploy_actions(action)
        return action

    def add_deployment_to_lambda(
        self,
        action_name: str,
        destination: Function,
        artifact: Optional[Artifact] = None,
        *,
        run_order: Optional[int] = None,
    ) -> tuple[Action, Action]:
        """
        Deploy an artifact as a function's code.

        Appends two actions: "<action_name>-update-code", which invokes the
        pipeline's update-code companion function with the artifact, then
        "<action_name>", which invokes the destination function. When a run
        order is given the invoke runs one step after the update.

        The companion function is created on the first call and reused after.

        Returns:
            (update_code_action, invoke_action)
        """
        _validate_action_name(action_name)
        _require_target(destination, "destination function")
        if self.update_code_function is None:
            self.update_code_function = update_code_function(UPDATE_CODE_FUNCTION_NAME)
            logger.debug(
                f"Provisioned companion function: {self.update_code_function.function_name}",
                extra={"event": "companion_function_added"},
            )

        update_action = Action(
            name=f"{action_name}{UPDATE_CODE_ACTION_SUFFIX}",
            kind=ActionKind.UPDATE_FUNCTION_CODE,
            inputs=(artifact or self.build_output_artifact,),
            configuration={
                "FunctionName": self.update_code_function.function_name,
                "UserParameters": json.dumps({"LambdaName": destination.function_name}),
            },
            run_order=run_order,
        )
        invoke_action = Action(
            name=action_name,
            kind=ActionKind.DEPLOY_COMPUTE,
            configuration={"FunctionName": destination.function_name},
            run_order=run_order + 1 if run_order is not None else None,
        )
        self._append_deploy_actions(update_action, invoke_action)
        return update_action, invoke_action

    def add_cloudfront_invalidation(
        self,
        action_name: str,
        invalidator: Union[Function, CompanionFunction, str],
        distribution: Union[Distribution, str],
        *,
        run_order: Optional[int] = None,
    ) -> Action:
        """
        Invoke an invalidation function for a distribution.

        The distribution id is only passed through as the invocation's user
        parameters; nothing is invalidated here.
        """
        _validate_action_name(action_name)
        distribution_id = distribution.distribution_id if isinstance(distribution, Distribution) else distribution
        if not distribution_id:
            raise ConfigurationError("A distribution id is required for an invalidation")
        action = Action(
            name=action_name,
            kind=ActionKind.INVOKE_INVALIDATOR,
            configuration={
                "FunctionName": _function_name(invalidator),
                "UserParameters": json.dumps({"distributionId": distribution_id}),
            },
            run_order=run_order,
        )
        self._append_deploy_actions(action)
        return action

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Render the pipeline document consumed by the deployment platform."""
        return {
            **({"Name": self.pipeline_name} if self.pipeline_name else {}),
            **({"ArtifactStore": {"Type": "S3", "Location": self.artifact_store.bucket_name}}
               if self.artifact_store else {}),
            "Stages": [s.to_dict() for s in self._stages],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    def __repr__(self) -> str:
        return f"CompactPipeline(name={self.pipeline_name}, stages={self.stage_names})"

"""
Topology configuration for compactpipe.

Loads and validates topology YAML files and replays them onto a CompactPipeline.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from compactpipe.errors import ConfigurationError, TopologyError
from compactpipe.pipeline import CompactPipeline
from compactpipe.resources import (
    Bucket,
    BucketAccessControl,
    BuildProject,
    ContainerService,
    Function,
    ServerDeploymentGroup,
    SourceRepository,
    secure_bucket,
)

LOG_LEVEL_ENV_VAR = "COMPACTPIPE_LOG_LEVEL"

DEPLOYMENT_KINDS = ("s3", "lambda", "ecs", "ec2", "invalidation")


class DeploymentConfig:
    """Configuration for a single deployment registration."""

    def __init__(self, index: int, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise TopologyError(f"Deployment #{index}: expected a mapping, got {type(data).__name__}")
        self.index = index
        self.kind = data.get("kind")
        self.name = data.get("name")
        self.artifact = data.get("artifact")
        self.run_order = data.get("run_order")

        # Kind-specific config
        self.extra = {k: v for k, v in data.items() if k not in [
            "kind", "name", "artifact", "run_order"
        ]}

    def get(self, key: str, default: Any = None) -> Any:
        """Get kind-specific configuration value."""
        return self.extra.get(key, default)

    def require(self, key: str) -> Any:
        """Get a kind-specific value that must be present."""
        value = self.extra.get(key)
        if value in (None, ""):
            raise TopologyError(f"Deployment {self.label}: missing '{key}'")
        return value

    @property
    def label(self) -> str:
        return f"#{self.index} ({self.name or 'unnamed'})"

    def validate(self) -> None:
        """Validate deployment configuration."""
        if self.kind not in DEPLOYMENT_KINDS:
            raise TopologyError(
                f"Deployment {self.label}: unknown kind {self.kind!r} "
                f"(expected one of {', '.join(DEPLOYMENT_KINDS)})"
            )
        if self.run_order is not None and (
            not isinstance(self.run_order, int) or isinstance(self.run_order, bool)
        ):
            raise TopologyError(f"Deployment {self.label}: run_order must be an integer")
        max_age_days = self.get("max_age_days")
        if max_age_days is not None and (
            not isinstance(max_age_days, (int, float)) or isinstance(max_age_days, bool)
        ):
            raise TopologyError(f"Deployment {self.label}: max_age_days must be a number")
        if not isinstance(self.get("extract", True), bool):
            raise TopologyError(f"Deployment {self.label}: extract must be true or false")

    def apply(self, pipeline: CompactPipeline) -> None:
        """Register this deployment on a pipeline."""
        artifact = None
        if self.artifact:
            artifact = pipeline.get_artifact(self.artifact)
            if artifact is None:
                raise TopologyError(f"Deployment {self.label}: unknown artifact {self.artifact!r}")

        if self.kind == "s3":
            max_age = timedelta(days=self.get("max_age_days", 7))
            pipeline.add_deployment_to_s3(
                self.name,
                Bucket(self.require("bucket")),
                artifact,
                access_control=BucketAccessControl(self.get("access_control", "private")),
                max_age=max_age,
                run_order=self.run_order,
                extract=self.get("extract", True),
            )
        elif self.kind == "lambda":
            pipeline.add_deployment_to_lambda(
                self.name, Function(self.require("function")), artifact, run_order=self.run_order
            )
        elif self.kind == "ecs":
            pipeline.add_deployment_to_ecs(
                self.name,
                ContainerService(self.require("cluster"), self.require("service")),
                artifact,
                run_order=self.run_order,
            )
        elif self.kind == "ec2":
            pipeline.add_deployment_to_ec2(
                self.name,
                ServerDeploymentGroup(self.require("application"), self.require("deployment_group")),
                artifact,
                run_order=self.run_order,
            )
        else:
            pipeline.add_cloudfront_invalidation(
                self.name,
                Function(self.require("function")),
                self.require("distribution_id"),
                run_order=self.run_order,
            )

    def __repr__(self) -> str:
        return f"DeploymentConfig(kind={self.kind}, name={self.name}, run_order={self.run_order})"


class TopologyConfig:
    """Complete topology configuration."""

    def __init__(self, config_path: Path):
        self.config_path = Path(config_path)
        self.raw_config = self._load_yaml()

        # Pipeline metadata
        pipeline = self._section("pipeline")
        self.name = pipeline.get("name")
        self.artifact_store = pipeline.get("artifact_store")

        # Source and build
        self.source = self._section("source")
        self.build = self._section("build")

        # Deployments, in registration order
        deployments = self.raw_config.get("deployments") or []
        if not isinstance(deployments, list):
            raise TopologyError("Topology 'deployments' must be a list")
        self.deployments: List[DeploymentConfig] = [
            DeploymentConfig(i, d) for i, d in enumerate(deployments, start=1)
        ]

        # Logging
        self.logging = self._section("logging")

    def _section(self, key: str) -> Dict[str, Any]:
        """Get a top-level section, which must be a mapping when present."""
        section = self.raw_config.get(key) or {}
        if not isinstance(section, dict):
            raise TopologyError(f"Topology '{key}' must be a mapping, got {type(section).__name__}")
        return section

    def _load_yaml(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        if not self.config_path.exists():
            raise TopologyError(f"Topology file not found: {self.config_path}")

        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TopologyError(f"Invalid YAML syntax: {e}")

        if not config:
            raise TopologyError("Topology file is empty")
        if not isinstance(config, dict):
            raise TopologyError("Topology file must contain a mapping")
        return config

    def get_branch(self) -> Optional[str]:
        return self.source.get("branch")

    def get_additional_outputs(self) -> List[str]:
        """Get extra build output names; a single name counts as a one-item list."""
        outputs = self.build.get("additional_outputs") or []
        if isinstance(outputs, str):
            outputs = [outputs]
        if not isinstance(outputs, list) or not all(isinstance(o, str) and o for o in outputs):
            raise TopologyError("Topology 'build.additional_outputs' must be a list of names")
        return list(outputs)

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path with date interpolation, or None for console only."""
        log_output = self.logging.get("output")
        if not log_output:
            return None
        log_output = log_output.replace("{date}", datetime.now().strftime("%Y-%m-%d"))
        return Path(log_output)

    def get_log_level(self) -> str:
        """Get logging level; the environment variable takes precedence."""
        return os.environ.get(LOG_LEVEL_ENV_VAR, self.logging.get("level", "INFO")).upper()

    def get_log_format(self) -> str:
        """Get log format (structured or pretty)."""
        return self.logging.get("format", "pretty")

    def should_log_to_console(self) -> bool:
        """Check if console logging is enabled (off unless requested)."""
        return bool(self.logging.get("console", False))

    def validate(self) -> None:
        """Validate entire configuration."""
        if not self.source.get("repository"):
            raise TopologyError("Topology 'source.repository' is required")
        if not self.build.get("project"):
            raise TopologyError("Topology 'build.project' is required")

        for deployment in self.deployments:
            deployment.validate()

    def build_pipeline(self) -> CompactPipeline:
        """
        Build the pipeline described by this topology.

        Deployments are registered in file order.

        Raises:
            TopologyError: If the topology is incomplete
            ConfigurationError: If a registration rejects its inputs
        """
        self.validate()

        pipeline = CompactPipeline(
            SourceRepository(self.source["repository"]),
            BuildProject(self.build["project"]),
            branch=self.get_branch(),
            additional_output_artifacts=self.get_additional_outputs(),
            artifact_store=secure_bucket(self.artifact_store) if self.artifact_store else None,
            pipeline_name=self.name,
        )
        for deployment in self.deployments:
            try:
                deployment.apply(pipeline)
            except ValueError as e:
                # Enum lookups (e.g. access_control) reject unknown values
                raise ConfigurationError(f"Deployment {deployment.label}: {e}")
        return pipeline

    def __repr__(self) -> str:
        return f"TopologyConfig(name={self.name}, deployments={len(self.deployments)})"


def load_topology_config(config_path: Path) -> TopologyConfig:
    """
    Load topology configuration from YAML file.

    Args:
        config_path: Path to topology file

    Returns:
        TopologyConfig instance

    Raises:
        TopologyError: If the file is missing or not valid YAML
    """
    return TopologyConfig(Path(config_path))

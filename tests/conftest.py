import pytest

from compactpipe.pipeline import CompactPipeline
from compactpipe.resources import (
    Bucket,
    BuildProject,
    ContainerService,
    Function,
    ServerDeploymentGroup,
    SourceRepository,
)


@pytest.fixture
def repository():
    return SourceRepository("test-repo")


@pytest.fixture
def build_project():
    return BuildProject("test-build")


@pytest.fixture
def pipeline(repository, build_project):
    return CompactPipeline(repository, build_project, pipeline_name="test-pipeline")


@pytest.fixture
def bucket():
    return Bucket("deployment-bucket")


@pytest.fixture
def function():
    return Function("my-function")


@pytest.fixture
def container_service():
    return ContainerService("my-cluster", "my-service")


@pytest.fixture
def deployment_group():
    return ServerDeploymentGroup("my-app", "my-hosts")

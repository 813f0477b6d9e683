"""Tests for the ActionKind enum.

Tests cover:
- ActionKind members and values
- Category, provider and action type id
- Deploy-stage membership
- Parsing from strings
"""

import pytest
from compactpipe.schemas import ActionCategory, ActionKind


class TestActionKindMembers:
    """Tests for ActionKind member existence."""

    def test_source_pull_exists(self):
        assert ActionKind.SOURCE_PULL.value == "source.codecommit"

    def test_build_execute_exists(self):
        assert ActionKind.BUILD_EXECUTE.value == "build.codebuild"

    def test_deploy_kinds_exist(self):
        assert ActionKind.DEPLOY_STORAGE.value == "deploy.s3"
        assert ActionKind.DEPLOY_CONTAINER.value == "deploy.ecs"
        assert ActionKind.DEPLOY_HOST_GROUP.value == "deploy.codedeploy"

    def test_invoke_kinds_exist(self):
        assert ActionKind.UPDATE_FUNCTION_CODE.value == "invoke.update_code"
        assert ActionKind.DEPLOY_COMPUTE.value == "invoke.compute"
        assert ActionKind.INVOKE_INVALIDATOR.value == "invoke.invalidation"


class TestActionKindCategory:
    """Tests for category and provider properties."""

    @pytest.mark.parametrize("kind,category", [
        (ActionKind.SOURCE_PULL, ActionCategory.SOURCE),
        (ActionKind.BUILD_EXECUTE, ActionCategory.BUILD),
        (ActionKind.DEPLOY_STORAGE, ActionCategory.DEPLOY),
        (ActionKind.DEPLOY_CONTAINER, ActionCategory.DEPLOY),
        (ActionKind.DEPLOY_HOST_GROUP, ActionCategory.DEPLOY),
        (ActionKind.UPDATE_FUNCTION_CODE, ActionCategory.INVOKE),
        (ActionKind.DEPLOY_COMPUTE, ActionCategory.INVOKE),
        (ActionKind.INVOKE_INVALIDATOR, ActionCategory.INVOKE),
    ])
    def test_category(self, kind, category):
        assert kind.category == category

    def test_action_type_id_for_s3(self):
        """S3 deploy should map to Deploy/AWS/S3."""
        assert ActionKind.DEPLOY_STORAGE.action_type_id == {
            "Category": "Deploy",
            "Owner": "AWS",
            "Provider": "S3",
            "Version": "1",
        }

    def test_invoke_kinds_use_lambda_provider(self):
        """All invoke kinds run through the function provider."""
        for kind in (ActionKind.UPDATE_FUNCTION_CODE, ActionKind.DEPLOY_COMPUTE, ActionKind.INVOKE_INVALIDATOR):
            assert kind.provider == "Lambda"

    def test_is_deploy_kind(self):
        """Only deploy and invoke kinds belong in the deploy stage."""
        assert not ActionKind.SOURCE_PULL.is_deploy_kind
        assert not ActionKind.BUILD_EXECUTE.is_deploy_kind
        assert ActionKind.DEPLOY_STORAGE.is_deploy_kind
        assert ActionKind.INVOKE_INVALIDATOR.is_deploy_kind


class TestFromString:
    """Tests for ActionKind.from_string."""

    def test_known_value(self):
        assert ActionKind.from_string("deploy.ecs") is ActionKind.DEPLOY_CONTAINER

    def test_unknown_value_raises(self):
        with pytest.raises(ValueError, match="Unknown action kind"):
            ActionKind.from_string("deploy.ftp")

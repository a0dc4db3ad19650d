"""Shared pytest fixtures for SFTP plan tests.

This module provides common configuration fixtures used by the plan, component and
command line tests.
"""

import asyncio

import pytest

from transfer_plan.plan.config import SFTPServerConfig

# Python 3.14+ compatibility: pulumi.log schedules its RPCs on the current event loop
try:
    asyncio.get_event_loop()
except RuntimeError:
    asyncio.set_event_loop(asyncio.new_event_loop())

VALID_TAGS = {"OU": "operations", "Environment": "test"}
ALICE_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7alice alice@example.com"
BOB_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIbob bob@example.com"
EFS_ARN = (
    "arn:aws:elasticfilesystem:us-east-1:123456789012:file-system/fs-0123456789abcdef0"
)
FUNCTION_ARN = "arn:aws:lambda:us-east-1:123456789012:function:process-upload"


@pytest.fixture
def mock_tags():
    """Return the minimal set of tags required on every configuration.

    Returns:
        dict: Dictionary of required resource tags.
    """
    return dict(VALID_TAGS)


@pytest.fixture
def mock_subnet_ids():
    """Mock subnet IDs for tests.

    Returns:
        list[str]: List of mocked subnet identifiers.
    """
    return ["subnet-11111111", "subnet-22222222", "subnet-33333333"]


@pytest.fixture
def sftp_users():
    """Two SFTP users declared under identifiers that differ from their logins."""
    return {
        "u1": {"user_name": "alice", "public_key": ALICE_KEY, "uid": 1001},
        "u2": {"user_name": "bob", "public_key": BOB_KEY, "uid": 1002, "gid": 2000},
    }


@pytest.fixture
def make_config(mock_tags, sftp_users):
    """Factory for S3 backed server configurations with overridable fields."""

    def _make_config(**overrides) -> SFTPServerConfig:
        settings = {
            "tags": dict(mock_tags),
            "server_name": "sftp-test",
            "s3_bucket_name": "ol-sftp-test",
            "users": sftp_users,
        }
        settings.update(overrides)
        return SFTPServerConfig(**settings)

    return _make_config


@pytest.fixture
def efs_arn():
    return EFS_ARN


@pytest.fixture
def function_arn():
    return FUNCTION_ARN

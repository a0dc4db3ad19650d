"""Per-user access policies for SFTP users.

Each user gets exactly one policy document scoped to its home directory. The login
name, not the key a user is declared under, is the isolation boundary: it names the
S3 prefix and keys every per-user resource in the plan.
"""

from typing import Any

from transfer_plan.lib.aws.iam_helper import (
    lint_iam_policy,
    sftp_efs_user_policy,
    sftp_s3_user_policy,
)
from transfer_plan.plan.config import SFTPServerConfig, SFTPUserConfig
from transfer_plan.plan.errors import TopologyError
from transfer_plan.plan.features import FeatureFlags
from transfer_plan.plan.intents import (
    AttributeRef,
    IntentGraph,
    ResourceKind,
    parse_address,
    substitute_references,
)

LINT_PLACEHOLDERS = {
    (ResourceKind.transfer_workflow, "arn"): "arn:aws:transfer:*:*:workflow/*",
    (ResourceKind.transfer_server, "arn"): "arn:aws:transfer:*:*:server/*",
    (ResourceKind.iam_role, "arn"): "arn:aws:iam::*:role/*",
}

# Findings accepted for planned policies. Users manage the ACLs of their own objects
# and a VPC attached processing function needs unscoped network interface actions.
PLAN_PARLIAMENT_CONFIG = {
    "PERMISSIONS_MANAGEMENT_ACTIONS": {
        "ignore_locations": [{"actions": [r"s3:PutObjectAcl"]}]
    },
    "RESOURCE_STAR": {
        "ignore_locations": [
            {
                "actions": [
                    r"ec2:(Create|Delete|Describe)NetworkInterfaces?",
                    r"ec2:(Assign|Unassign)PrivateIpAddresses",
                ]
            }
        ]
    },
}


def user_policy(
    config: SFTPServerConfig, flags: FeatureFlags, user: SFTPUserConfig
) -> dict[str, Any]:
    """Build the access policy document for a single SFTP user.

    S3 backed servers get a policy restricted to ``<bucket>/<user_name>/*``. EFS
    backed servers share one filesystem, so every user receives the same document
    and isolation is left to the POSIX profile of the user.

    :param config: The server configuration.
    :type config: SFTPServerConfig

    :param flags: The resolved feature flags for the configuration.
    :type flags: FeatureFlags

    :param user: The user to generate a policy for.
    :type user: SFTPUserConfig

    :returns: A dictionary object representing a policy document.
    """
    if flags.is_s3_backend:
        return sftp_s3_user_policy(
            bucket_name=config.s3_bucket_name,
            user_name=user.user_name,
            actions=config.s3_actions,
        )
    return sftp_efs_user_policy(config.efs_file_system_arn)


def user_policies(
    config: SFTPServerConfig, flags: FeatureFlags
) -> dict[str, dict[str, Any]]:
    """Build one policy document per declared user, keyed by login name."""
    return {
        user.user_name: user_policy(config, flags, user)
        for user in config.users.values()
    }


def lookup_user(config: SFTPServerConfig, user_id: str) -> SFTPUserConfig:
    """Return the user declared under ``user_id``.

    :raises TopologyError: If no such user is declared.
    """
    try:
        return config.users[user_id]
    except KeyError as exc:
        msg = f"Per-user intents requested for undeclared user {user_id!r}"
        raise TopologyError(msg) from exc


def home_directory_root(config: SFTPServerConfig, flags: FeatureFlags) -> str:
    """Return the bucket or filesystem id that home directories live under."""
    if flags.is_s3_backend:
        return config.s3_bucket_name
    return config.file_system_id


def home_directory(
    config: SFTPServerConfig, flags: FeatureFlags, user: SFTPUserConfig
) -> str:
    return f"/{home_directory_root(config, flags)}/{user.user_name}"


def _lint_placeholder(ref: AttributeRef) -> str:
    kind, _, _ = parse_address(ref.address)
    return LINT_PLACEHOLDERS.get((kind, ref.attribute), "*")


def lint_plan_policies(
    graph: IntentGraph, parliament_config: dict[str, Any] | None = None
) -> list[str]:
    """Run every planned IAM policy through parliament.

    References that are only known after realization are replaced by wildcard ARNs
    of the matching resource type before linting. The findings accepted in
    ``PLAN_PARLIAMENT_CONFIG`` are ignored unless another configuration is given.

    :raises Exception: With the parliament findings of the first failing policy.

    :returns: The addresses of the policies that were linted.
    """
    parliament_config = parliament_config or PLAN_PARLIAMENT_CONFIG
    linted = []
    for intent in graph.of_kind(ResourceKind.iam_policy):
        document = substitute_references(intent.properties["policy"], _lint_placeholder)
        lint_iam_policy(document, parliament_config=parliament_config)
        linted.append(intent.address)
    return linted

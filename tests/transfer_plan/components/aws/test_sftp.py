"""Tests for the SFTPServer component.

This test validates:
1. Every planned intent is realized as a resource of the matching type
2. Attribute references resolve to the outputs of previously created resources
3. The component outputs expose the endpoint and the per-user role ARNs
"""

import pulumi
from pulumi_aws import ec2, iam, route53, transfer

from transfer_plan.components.aws.sftp import SFTPServer
from transfer_plan.plan.config import SFTPServerConfig

ALICE_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7alice alice@example.com"
FUNCTION_ARN = "arn:aws:lambda:us-east-1:123456789012:function:process-upload"
SUBNET_IDS = ["subnet-11111111", "subnet-22222222"]


def _sftp_config(**overrides) -> SFTPServerConfig:
    settings = {
        "tags": {"OU": "operations", "Environment": "test"},
        "server_name": "sftp-test",
        "s3_bucket_name": "ol-sftp-test",
        "users": {
            "u1": {"user_name": "alice", "public_key": ALICE_KEY, "uid": 1001},
        },
    }
    settings.update(overrides)
    return SFTPServerConfig(**settings)


@pulumi.runtime.test
def test_public_server_outputs():
    sftp_server = SFTPServer(_sftp_config())

    assert set(sftp_server.resources) == set(sftp_server.plan.addresses())
    assert isinstance(sftp_server.resources["transfer_server.sftp"], transfer.Server)
    assert isinstance(
        sftp_server.resources["transfer_user.sftp_user[alice]"], transfer.User
    )
    assert isinstance(sftp_server.resources["iam_role.logging"], iam.Role)

    def check_outputs(args):
        endpoint, server_id, logging_role_arn, user_role_arns = args
        assert endpoint == "sftp-test_id.server.transfer.us-east-1.amazonaws.com"
        assert server_id == "sftp-test_id"
        assert logging_role_arn == (
            "arn:aws:iam::123456789012:role/sftp-test-sftp-logging-role"
        )
        assert user_role_arns == {
            "alice": "arn:aws:iam::123456789012:role/sftp-test-sftp-alice-role"
        }

    return pulumi.Output.all(
        sftp_server.outputs["endpoint"],
        sftp_server.outputs["server_id"],
        sftp_server.outputs["logging_role_arn"],
        pulumi.Output.from_input(sftp_server.outputs["user_role_arns"]),
    ).apply(check_outputs)


@pulumi.runtime.test
def test_references_resolve_to_created_resources():
    sftp_server = SFTPServer(_sftp_config())
    server = sftp_server.resources["transfer_server.sftp"]
    user = sftp_server.resources["transfer_user.sftp_user[alice]"]
    ssh_key = sftp_server.resources["transfer_ssh_key.sftp_user[alice]"]
    user_policy = sftp_server.resources["iam_policy.user_access[alice]"]

    def check_references(args):
        logging_role, user_role, user_server_id, key_user_name, policy = args
        assert logging_role.endswith("role/sftp-test-sftp-logging-role")
        assert user_role.endswith("role/sftp-test-sftp-alice-role")
        assert user_server_id == "sftp-test_id"
        assert key_user_name == "alice"
        assert '"arn:aws:s3:::ol-sftp-test/alice/*"' in policy

    return pulumi.Output.all(
        server.logging_role,
        user.role,
        user.server_id,
        ssh_key.user_name,
        user_policy.policy,
    ).apply(check_references)


@pulumi.runtime.test
def test_vpc_workflow_and_dns_resources():
    sftp_server = SFTPServer(
        _sftp_config(
            vpc_id="vpc-12345678",
            subnet_ids=SUBNET_IDS,
            eip_enabled=True,
            event_workflow_enabled=True,
            processing_function_arn=FUNCTION_ARN,
            domain_name="sftp.example.com",
            zone_id="Z1234567890ABC",
        )
    )
    resources = sftp_server.resources

    for subnet_id in SUBNET_IDS:
        assert isinstance(
            resources[f"elastic_ip.transfer_server[{subnet_id}]"], ec2.Eip
        )
    assert isinstance(resources["security_group.transfer_server"], ec2.SecurityGroup)
    assert isinstance(resources["transfer_workflow.on_upload"], transfer.Workflow)
    assert isinstance(resources["iam_role.processing_function"], iam.Role)
    assert isinstance(resources["route53_record.custom_domain"], route53.Record)
    assert sftp_server.outputs["hostname"] == "sftp.example.com"

    def check_records(args):
        records, endpoint = args
        assert records == [endpoint]

    return pulumi.Output.all(
        resources["route53_record.custom_domain"].records,
        sftp_server.outputs["endpoint"],
    ).apply(check_records)


@pulumi.runtime.test
def test_disabled_server_creates_nothing():
    sftp_server = SFTPServer(_sftp_config(enabled=False))
    assert sftp_server.resources == {}
    assert sftp_server.outputs["endpoint"] is None
    assert sftp_server.outputs["user_role_arns"] == {}

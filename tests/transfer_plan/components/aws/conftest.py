"""Fixtures for AWS component tests."""

import pulumi
import pytest

ACCOUNT_ID = "123456789012"


class SFTPServerMocks(pulumi.runtime.Mocks):
    """Mock implementation for testing the SFTP server component."""

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        """Mock resource creation."""
        outputs = args.inputs

        # Mock outputs for specific resource types
        if args.typ in {"aws:iam/role:Role", "aws:iam/policy:Policy"}:
            resource_type = args.typ.rsplit(":", 1)[-1].lower()
            outputs = {
                **args.inputs,
                "arn": f"arn:aws:iam::{ACCOUNT_ID}:{resource_type}/{args.name}",
                "name": args.name,
            }
        elif args.typ == "aws:transfer/server:Server":
            outputs = {
                **args.inputs,
                "arn": f"arn:aws:transfer:us-east-1:{ACCOUNT_ID}:server/{args.name}",
                "endpoint": f"{args.name}_id.server.transfer.us-east-1.amazonaws.com",
            }
        elif args.typ == "aws:transfer/workflow:Workflow":
            outputs = {
                **args.inputs,
                "arn": f"arn:aws:transfer:us-east-1:{ACCOUNT_ID}:workflow/{args.name}",
            }
        elif args.typ == "aws:ec2/eip:Eip":
            outputs = {**args.inputs, "allocationId": f"eipalloc-{args.name}"}

        return [args.name + "_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):  # noqa: ARG002
        """Mock data source calls."""
        return {}


@pytest.fixture(autouse=True)
def sftp_server_mocks():
    """Set up SFTPServerMocks for component tests.

    This fixture ensures that proper mocks are set up before each test
    and prevents cross-test pollution.
    """
    pulumi.runtime.set_mocks(SFTPServerMocks(), preview=False)

"""Module for realizing an SFTP transfer plan as AWS Transfer Family resources.

The plan is built by ``transfer_plan.plan.topology``. This component walks the
planned intents in dependency order and creates the matching ``pulumi_aws``
resources, resolving attribute references to the outputs of the resources that
were already created.
"""

import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pulumi
from pulumi import ComponentResource, Output, ResourceOptions
from pulumi_aws import ec2, iam, route53, transfer

from transfer_plan.plan.config import SFTPServerConfig
from transfer_plan.plan.intents import (
    AttributeRef,
    ResourceKind,
    substitute_references,
)
from transfer_plan.plan.outputs import project_outputs
from transfer_plan.plan.topology import build_topology


def _json_document(document: Any) -> Output[str]:
    return Output.from_input(document).apply(json.dumps)


class SFTPServer(ComponentResource):
    """A Pulumi component for constructing an AWS Transfer Family SFTP server
    along with its users, IAM roles, networking and on-upload workflow.
    """

    def __init__(
        self, sftp_config: SFTPServerConfig, opts: ResourceOptions | None = None
    ):
        """Plan and create an SFTP server.

        :param sftp_config: Configuration object for customizing the component
        :type sftp_config: SFTPServerConfig

        :param opts: Pulumi resource options
        :type opts: ResourceOptions

        :rtype: SFTPServer
        """
        super().__init__(
            "transfer_plan:aws:SFTPServer", sftp_config.server_name, None, opts
        )

        self.generic_resource_opts = ResourceOptions(parent=self).merge(opts)
        self.plan = build_topology(sftp_config)
        self.resources: dict[str, Any] = {}

        realizers: dict[ResourceKind, Callable[[dict], Any]] = {
            ResourceKind.policy_document: self._policy_document,
            ResourceKind.iam_policy: self._iam_policy,
            ResourceKind.iam_role: self._iam_role,
            ResourceKind.security_group: self._security_group,
            ResourceKind.elastic_ip: self._elastic_ip,
            ResourceKind.endpoint_details: self._endpoint_details,
            ResourceKind.transfer_workflow: self._workflow,
            ResourceKind.transfer_server: self._server,
            ResourceKind.transfer_user: self._user,
            ResourceKind.transfer_ssh_key: self._ssh_key,
            ResourceKind.route53_record: self._dns_record,
        }
        for intent in self.plan:
            pulumi.log.debug(f"Creating {intent.address}")
            properties = substitute_references(intent.properties, self.lookup)
            self.resources[intent.address] = realizers[intent.kind](properties)

        self.outputs = project_outputs(self.plan).resolve(self.lookup)
        self.register_outputs(self.outputs)

    def lookup(self, ref: AttributeRef) -> Any:
        """Return the realized value of a planned attribute."""
        return getattr(self.resources[ref.address], ref.attribute)

    def _policy_document(self, properties: dict) -> Any:
        return SimpleNamespace(json=_json_document(properties["document"]))

    def _iam_policy(self, properties: dict) -> iam.Policy:
        return iam.Policy(
            properties["resource_name"],
            description=properties["description"],
            policy=_json_document(properties["policy"]),
            tags=properties["tags"],
            opts=self.generic_resource_opts,
        )

    def _iam_role(self, properties: dict) -> iam.Role:
        role = iam.Role(
            properties["resource_name"],
            assume_role_policy=properties["assume_role_policy"],
            description=properties["description"],
            tags=properties["tags"],
            opts=self.generic_resource_opts,
        )
        iam.RolePolicyAttachment(
            f"{properties['resource_name']}-policy-attachment",
            role=role.name,
            policy_arn=properties["policy_arn"],
            opts=self.generic_resource_opts,
        )
        return role

    def _security_group(self, properties: dict) -> ec2.SecurityGroup:
        return ec2.SecurityGroup(
            properties["resource_name"],
            description=properties["description"],
            vpc_id=properties["vpc_id"],
            ingress=[
                ec2.SecurityGroupIngressArgs(**rule) for rule in properties["ingress"]
            ],
            egress=[
                ec2.SecurityGroupEgressArgs(**rule) for rule in properties["egress"]
            ],
            tags=properties["tags"],
            opts=self.generic_resource_opts,
        )

    def _elastic_ip(self, properties: dict) -> ec2.Eip:
        return ec2.Eip(
            properties["resource_name"],
            domain=properties["domain"],
            tags=properties["tags"],
            opts=self.generic_resource_opts,
        )

    def _endpoint_details(self, properties: dict) -> Any:
        return SimpleNamespace(
            details=transfer.ServerEndpointDetailsArgs(
                vpc_id=properties["vpc_id"],
                subnet_ids=properties["subnet_ids"],
                security_group_ids=properties["security_group_ids"] or None,
                address_allocation_ids=properties["address_allocation_ids"] or None,
            )
        )

    def _workflow(self, properties: dict) -> transfer.Workflow:
        return transfer.Workflow(
            properties["resource_name"],
            description=properties["description"],
            steps=[
                transfer.WorkflowStepArgs(
                    type=step["type"],
                    custom_step_details=transfer.WorkflowStepCustomStepDetailsArgs(
                        **step["custom_step_details"]
                    ),
                )
                for step in properties["steps"]
            ],
            tags=properties["tags"],
            opts=self.generic_resource_opts,
        )

    def _server(self, properties: dict) -> transfer.Server:
        workflow_details = None
        if on_upload := properties.get("workflow_details", {}).get("on_upload"):
            workflow_details = transfer.ServerWorkflowDetailsArgs(
                on_upload=transfer.ServerWorkflowDetailsOnUploadArgs(**on_upload)
            )
        return transfer.Server(
            properties["resource_name"],
            domain=properties["domain"],
            endpoint_type=properties["endpoint_type"],
            endpoint_details=properties.get("endpoint_details"),
            identity_provider_type=properties["identity_provider_type"],
            protocols=properties["protocols"],
            security_policy_name=properties["security_policy_name"],
            logging_role=properties["logging_role"],
            workflow_details=workflow_details,
            tags=properties["tags"],
            opts=self.generic_resource_opts,
        )

    def _user(self, properties: dict) -> transfer.User:
        home_directory_mappings = None
        if "home_directory_mappings" in properties:
            home_directory_mappings = [
                transfer.UserHomeDirectoryMappingArgs(**mapping)
                for mapping in properties["home_directory_mappings"]
            ]
        posix_profile = None
        if "posix_profile" in properties:
            posix_profile = transfer.UserPosixProfileArgs(**properties["posix_profile"])
        return transfer.User(
            properties["resource_name"],
            server_id=properties["server_id"],
            user_name=properties["user_name"],
            role=properties["role"],
            home_directory_type=properties["home_directory_type"],
            home_directory_mappings=home_directory_mappings,
            home_directory=properties.get("home_directory"),
            posix_profile=posix_profile,
            tags=properties["tags"],
            opts=self.generic_resource_opts,
        )

    def _ssh_key(self, properties: dict) -> transfer.SshKey:
        return transfer.SshKey(
            properties["resource_name"],
            server_id=properties["server_id"],
            user_name=properties["user_name"],
            body=properties["body"],
            opts=self.generic_resource_opts,
        )

    def _dns_record(self, properties: dict) -> route53.Record:
        return route53.Record(
            properties["resource_name"],
            zone_id=properties["zone_id"],
            name=properties["name"],
            type=properties["type"],
            ttl=properties["ttl"],
            records=properties["records"],
            opts=self.generic_resource_opts,
        )

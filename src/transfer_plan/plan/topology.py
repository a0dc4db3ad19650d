"""Assemble the complete intent graph for an SFTP server configuration."""

import pulumi

from transfer_plan.lib.aws.iam_helper import (
    LAMBDA_SERVICE_PRINCIPAL,
    processing_function_policy,
    service_trust_policy,
    transfer_logging_policy,
    transfer_trust_policy,
    workflow_execution_policy,
)
from transfer_plan.plan.config import SFTPServerConfig, SFTPUserConfig
from transfer_plan.plan.errors import TopologyError
from transfer_plan.plan.features import FeatureFlags, resolve
from transfer_plan.plan.intents import (
    IntentGraph,
    ResourceIntent,
    ResourceKind,
    format_address,
)
from transfer_plan.plan.policies import home_directory, lookup_user, user_policy

SFTP_PORT = 22
SERVER_NAME = "sftp"
USER_ACCESS_NAME = "user_access"
SFTP_USER_NAME = "sftp_user"
TRANSFER_TRUST_NAME = "transfer_trust"
LAMBDA_TRUST_NAME = "lambda_trust"
LOGGING_NAME = "logging"
PROCESSING_NAME = "processing"
PROCESSING_FUNCTION_NAME = "processing_function"
WORKFLOW_NAME = "on_upload"
NETWORK_NAME = "transfer_server"
DNS_NAME = "custom_domain"
UPLOADED_FILE_LOCATION = "${original.file}"

SERVER_ADDRESS = format_address(ResourceKind.transfer_server, SERVER_NAME)
LOGGING_ROLE_ADDRESS = format_address(ResourceKind.iam_role, LOGGING_NAME)


def _trust_document(graph: IntentGraph, name: str, document: dict) -> ResourceIntent:
    return graph.add(
        ResourceIntent(
            kind=ResourceKind.policy_document,
            name=name,
            properties={"document": document},
        )
    )


def _role_with_policy(  # noqa: PLR0913
    graph: IntentGraph,
    config: SFTPServerConfig,
    *,
    name: str,
    resource_name: str,
    description: str,
    trust: ResourceIntent,
    document: dict,
    key: str | None = None,
    tags: dict[str, str] | None = None,
) -> ResourceIntent:
    """Plan an IAM policy and a role that has it as its only attached policy."""
    policy = graph.add(
        ResourceIntent(
            kind=ResourceKind.iam_policy,
            name=name,
            key=key,
            properties={
                "resource_name": f"{resource_name}-policy",
                "description": description,
                "policy": document,
                "tags": config.merged_tags(tags or {}),
            },
        )
    )
    return graph.add(
        ResourceIntent(
            kind=ResourceKind.iam_role,
            name=name,
            key=key,
            properties={
                "resource_name": f"{resource_name}-role",
                "description": description,
                "assume_role_policy": trust.ref("json"),
                "policy_arn": policy.ref("arn"),
                "tags": config.merged_tags(
                    {"Name": f"{resource_name}-role"}, tags or {}
                ),
            },
        )
    )


def _security_group(graph: IntentGraph, config: SFTPServerConfig) -> ResourceIntent:
    cidr_blocks = [str(cidr_block) for cidr_block in config.allowed_cidr_blocks]
    return graph.add(
        ResourceIntent(
            kind=ResourceKind.security_group,
            name=NETWORK_NAME,
            properties={
                "resource_name": f"{config.server_name}-sftp-security-group",
                "description": f"Access to the {config.server_name} SFTP endpoint",
                "vpc_id": config.vpc_id,
                "ingress": [
                    {
                        "protocol": "tcp",
                        "from_port": SFTP_PORT,
                        "to_port": SFTP_PORT,
                        "cidr_blocks": cidr_blocks,
                        "description": "SFTP access",
                    }
                ],
                "egress": [
                    {
                        "protocol": "-1",
                        "from_port": 0,
                        "to_port": 0,
                        "cidr_blocks": ["0.0.0.0/0"],
                        "description": "Outbound access",
                    }
                ],
                "tags": config.merged_tags(
                    {"Name": f"{config.server_name}-sftp-security-group"}
                ),
            },
        )
    )


def _elastic_ips(graph: IntentGraph, config: SFTPServerConfig) -> list[ResourceIntent]:
    return [
        graph.add(
            ResourceIntent(
                kind=ResourceKind.elastic_ip,
                name=NETWORK_NAME,
                key=subnet_id,
                properties={
                    "resource_name": f"{config.server_name}-sftp-eip-{subnet_id}",
                    "domain": "vpc",
                    "tags": config.merged_tags(
                        {"Name": f"{config.server_name}-sftp-{subnet_id}"}
                    ),
                },
            )
        )
        for subnet_id in config.subnet_ids
    ]


def _endpoint_details(
    graph: IntentGraph, config: SFTPServerConfig, flags: FeatureFlags
) -> ResourceIntent:
    if not config.subnet_ids:
        msg = "A VPC hosted SFTP endpoint requires at least one subnet"
        raise TopologyError(msg)

    security_group_ids: list = list(config.vpc_security_group_ids)
    if flags.security_group_managed:
        pulumi.log.debug("Managed security group attached to the SFTP endpoint")
        security_group_ids.insert(0, _security_group(graph, config).ref("id"))

    if flags.eip_enabled:
        elastic_ips = _elastic_ips(graph, config)
        address_allocation_ids: list = [eip.ref("allocation_id") for eip in elastic_ips]
        pulumi.log.debug(f"Allocating {len(elastic_ips)} elastic IPs")
    else:
        address_allocation_ids = list(config.address_allocation_ids)
    if address_allocation_ids and len(address_allocation_ids) != len(
        config.subnet_ids
    ):
        msg = (
            f"{len(address_allocation_ids)} address allocations were planned for "
            f"{len(config.subnet_ids)} subnets, one per subnet is required"
        )
        raise TopologyError(msg)

    return graph.add(
        ResourceIntent(
            kind=ResourceKind.endpoint_details,
            name=NETWORK_NAME,
            properties={
                "vpc_id": config.vpc_id,
                "subnet_ids": list(config.subnet_ids),
                "security_group_ids": security_group_ids,
                "address_allocation_ids": address_allocation_ids,
            },
        )
    )


def _event_workflow(
    graph: IntentGraph,
    config: SFTPServerConfig,
    transfer_trust: ResourceIntent,
) -> tuple[ResourceIntent, ResourceIntent]:
    """Plan the on-upload workflow along with the roles that run it.

    :returns: The workflow execution role and the workflow.
    """
    processing_role = _role_with_policy(
        graph,
        config,
        name=PROCESSING_NAME,
        resource_name=f"{config.server_name}-sftp-workflow",
        description="Run the on-upload workflow of the SFTP server",
        trust=transfer_trust,
        document=workflow_execution_policy(
            config.processing_function_arn, config.s3_bucket_name
        ),
    )
    workflow = graph.add(
        ResourceIntent(
            kind=ResourceKind.transfer_workflow,
            name=WORKFLOW_NAME,
            properties={
                "resource_name": f"{config.server_name}-sftp-on-upload-workflow",
                "description": "Forward uploaded files to the processing function",
                "steps": [
                    {
                        "type": "CUSTOM",
                        "custom_step_details": {
                            "name": "process-uploaded-file",
                            "source_file_location": UPLOADED_FILE_LOCATION,
                            "target": config.processing_function_arn,
                            "timeout_seconds": config.workflow_step_timeout,
                        },
                    }
                ],
                "tags": config.merged_tags(),
            },
        )
    )
    lambda_trust = _trust_document(
        graph, LAMBDA_TRUST_NAME, service_trust_policy(LAMBDA_SERVICE_PRINCIPAL)
    )
    _role_with_policy(
        graph,
        config,
        name=PROCESSING_FUNCTION_NAME,
        resource_name=f"{config.server_name}-sftp-processing-function",
        description="Execution role of the SFTP upload processing function",
        trust=lambda_trust,
        document=processing_function_policy(
            config.processing_function_name,
            workflow.ref("arn"),
            config.efs_file_system_arn,
        ),
    )
    return processing_role, workflow


def _server(  # noqa: PLR0913
    graph: IntentGraph,
    config: SFTPServerConfig,
    flags: FeatureFlags,
    logging_role: ResourceIntent,
    endpoint_details: ResourceIntent | None,
    workflow: tuple[ResourceIntent, ResourceIntent] | None,
) -> ResourceIntent:
    properties = {
        "resource_name": config.server_name,
        "domain": config.domain.value,
        "endpoint_type": flags.endpoint_type,
        "identity_provider_type": config.identity_provider_type,
        "protocols": list(config.protocols),
        "security_policy_name": config.security_policy_name,
        "logging_role": logging_role.ref("arn"),
        "tags": config.merged_tags({"Name": config.server_name}),
    }
    if endpoint_details is not None:
        properties["endpoint_details"] = endpoint_details.ref("details")
    if workflow is not None:
        processing_role, on_upload = workflow
        properties["workflow_details"] = {
            "on_upload": {
                "execution_role": processing_role.ref("arn"),
                "workflow_id": on_upload.ref("id"),
            }
        }
    return graph.add(
        ResourceIntent(
            kind=ResourceKind.transfer_server,
            name=SERVER_NAME,
            properties=properties,
        )
    )


def user_intents(
    graph: IntentGraph,
    config: SFTPServerConfig,
    flags: FeatureFlags,
    user_id: str,
) -> list[ResourceIntent]:
    """Plan the policy, role, user and SSH key of one declared user.

    The server and the shared trust document must already be in the graph.

    :raises TopologyError: If ``user_id`` is not declared in the configuration.
    """
    user: SFTPUserConfig = lookup_user(config, user_id)
    login = user.user_name
    server = graph.get(SERVER_ADDRESS)
    trust = graph.get(format_address(ResourceKind.policy_document, TRANSFER_TRUST_NAME))
    user_tags = {"SFTPUser": login}

    role = _role_with_policy(
        graph,
        config,
        name=USER_ACCESS_NAME,
        key=login,
        resource_name=f"{config.server_name}-sftp-{login}",
        description=f"Home directory access for SFTP user {login}",
        trust=trust,
        document=user_policy(config, flags, user),
        tags=user_tags,
    )

    properties = {
        "resource_name": f"{config.server_name}-sftp-user-{login}",
        "server_id": server.ref("id"),
        "user_name": login,
        "role": role.ref("arn"),
        "home_directory_type": flags.home_directory_type,
        "tags": config.merged_tags(
            {"Name": f"{config.server_name}-sftp-user-{login}"}, user_tags
        ),
    }
    if flags.restricted_home:
        properties["home_directory_mappings"] = [
            {"entry": "/", "target": home_directory(config, flags, user)}
        ]
    else:
        properties["home_directory"] = home_directory(config, flags, user)
    if not flags.is_s3_backend:
        properties["posix_profile"] = {"uid": user.uid, "gid": user.posix_gid}
    sftp_user = graph.add(
        ResourceIntent(
            kind=ResourceKind.transfer_user,
            name=SFTP_USER_NAME,
            key=login,
            properties=properties,
        )
    )

    ssh_key = graph.add(
        ResourceIntent(
            kind=ResourceKind.transfer_ssh_key,
            name=SFTP_USER_NAME,
            key=login,
            properties={
                "resource_name": f"{config.server_name}-sftp-user-{login}-key",
                "server_id": server.ref("id"),
                "user_name": sftp_user.ref("user_name"),
                "body": user.public_key,
            },
        )
    )
    policy = graph.get(
        format_address(ResourceKind.iam_policy, USER_ACCESS_NAME, login)
    )
    return [policy, role, sftp_user, ssh_key]


def _dns_record(
    graph: IntentGraph, config: SFTPServerConfig, server: ResourceIntent
) -> ResourceIntent:
    return graph.add(
        ResourceIntent(
            kind=ResourceKind.route53_record,
            name=DNS_NAME,
            properties={
                "resource_name": f"{config.server_name}-sftp-dns-record",
                "zone_id": config.zone_id,
                "name": config.domain_name,
                "type": "CNAME",
                "ttl": config.dns_ttl,
                "records": [server.ref("endpoint")],
            },
        )
    )


def build_topology(
    config: SFTPServerConfig, flags: FeatureFlags | None = None
) -> IntentGraph:
    """Plan every resource required by an SFTP server configuration.

    Intents are added in dependency order, so iterating the returned graph yields a
    valid creation order. A disabled configuration produces an empty graph.

    :param config: A validated SFTP server configuration.
    :type config: SFTPServerConfig

    :param flags: Pre-resolved feature flags. Resolved from ``config`` when omitted.
    :type flags: FeatureFlags

    :raises TopologyError: If the requested networking is structurally impossible.

    :returns: The planned intent graph.

    :rtype: IntentGraph
    """
    flags = flags or resolve(config)
    graph = IntentGraph()
    if not flags.enabled:
        pulumi.log.debug(f"SFTP server {config.server_name} is disabled")
        return graph
    if flags.eip_enabled and not flags.is_vpc:
        msg = "Elastic IPs can only be allocated for a VPC hosted endpoint"
        raise TopologyError(msg)

    transfer_trust = _trust_document(
        graph, TRANSFER_TRUST_NAME, transfer_trust_policy()
    )
    logging_role = _role_with_policy(
        graph,
        config,
        name=LOGGING_NAME,
        resource_name=f"{config.server_name}-sftp-logging",
        description="Allow AWS Transfer to write CloudWatch logs",
        trust=transfer_trust,
        document=transfer_logging_policy(),
    )

    endpoint_details = None
    if flags.is_vpc:
        pulumi.log.debug(f"SFTP endpoint will be hosted in VPC {config.vpc_id}")
        endpoint_details = _endpoint_details(graph, config, flags)

    workflow = None
    if flags.event_workflow_enabled:
        pulumi.log.debug("Uploaded files will be forwarded to the processing function")
        workflow = _event_workflow(graph, config, transfer_trust)

    server = _server(graph, config, flags, logging_role, endpoint_details, workflow)

    for user_id in config.users:
        user_intents(graph, config, flags, user_id)
    pulumi.log.debug(f"Planned resources for {len(config.users)} SFTP users")

    if flags.dns_enabled:
        pulumi.log.debug(f"SFTP endpoint aliased as {config.domain_name}")
        _dns_record(graph, config, server)

    return graph

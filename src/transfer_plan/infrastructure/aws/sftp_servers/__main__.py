"""
Pulumi project for AWS Transfer Family SFTP servers
"""

import pulumi
from pulumi import Config

from transfer_plan.components.aws.sftp import SFTPServer
from transfer_plan.lib.pulumi_helper import parse_stack, stack_tags
from transfer_plan.plan.config import SFTPServerConfig

stack_info = parse_stack()
sftp_config = Config("aws_sftp")

server_settings = {
    "server_name": stack_info.resource_name(sftp_config.get("server_name") or "sftp"),
    "tags": stack_tags(stack_info, sftp_config.get("business_unit") or "operations"),
    **sftp_config.require_object("server"),
}
sftp_server_config = SFTPServerConfig(**server_settings)

sftp_server = SFTPServer(sftp_config=sftp_server_config)

pulumi.export("sftp_server", sftp_server.outputs)

"""Resolve a configuration into the feature flags that gate planned resources.

Every optional block of the plan is decided here, once. The topology builder only
branches on these flags and never on raw configuration values.
"""

from dataclasses import dataclass
from typing import Literal

from transfer_plan.plan.config import SFTPServerConfig, StorageDomain


@dataclass(frozen=True)
class FeatureFlags:
    """Capabilities derived from an SFTP server configuration."""

    enabled: bool
    is_vpc: bool
    security_group_managed: bool
    is_s3_backend: bool
    eip_enabled: bool
    dns_enabled: bool
    event_workflow_enabled: bool
    restricted_home: bool

    @property
    def endpoint_type(self) -> Literal["VPC", "PUBLIC"]:
        return "VPC" if self.is_vpc else "PUBLIC"

    @property
    def home_directory_type(self) -> Literal["LOGICAL", "PATH"]:
        return "LOGICAL" if self.restricted_home else "PATH"


def resolve(config: SFTPServerConfig) -> FeatureFlags:
    """Derive the feature flags for a configuration.

    :param config: A validated SFTP server configuration.
    :type config: SFTPServerConfig

    :returns: The resolved capability flags.

    :rtype: FeatureFlags
    """
    is_vpc = bool(config.vpc_id)
    return FeatureFlags(
        enabled=config.enabled,
        is_vpc=is_vpc,
        security_group_managed=config.enabled and config.security_group_enabled,
        is_s3_backend=config.domain == StorageDomain.s3,
        eip_enabled=is_vpc and config.eip_enabled,
        dns_enabled=bool(config.domain_name and config.zone_id),
        event_workflow_enabled=config.event_workflow_enabled,
        restricted_home=config.restricted_home,
    )

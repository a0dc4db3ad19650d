"""Configuration model for an AWS Transfer Family SFTP server plan."""

import re
from enum import Enum, unique
from ipaddress import IPv4Network
from typing import Literal

import pulumi
from pydantic import BaseModel, Field, field_validator, model_validator

from transfer_plan.lib.aws.iam_helper import DEFAULT_S3_USER_ACTIONS
from transfer_plan.lib.aws_base import AWSBase

USER_NAME_PATTERN = re.compile(r"^[\w][\w@.-]{2,99}$")
LAMBDA_ARN_PATTERN = re.compile(
    r"^arn:aws[\w-]*:lambda:[a-z0-9-]+:\d{12}:function:[\w-]+(:[\w$-]+)?$"
)
EFS_ARN_PATTERN = re.compile(
    r"^arn:aws[\w-]*:elasticfilesystem:[a-z0-9-]+:\d{12}:file-system/fs-[0-9a-f]+$"
)
SSH_KEY_TYPES = (
    "ssh-rsa",
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
)


@unique
class StorageDomain(str, Enum):
    """Storage substrate backing the home directories of SFTP users."""

    s3 = "S3"
    efs = "EFS"


class SFTPUserConfig(BaseModel):
    """Configuration for a single SFTP user."""

    user_name: str = Field(
        description=(
            "Login name of the user. It is also the home directory prefix and the key "
            "for every resource planned for the user."
        )
    )
    public_key: str = Field(description="OpenSSH formatted public key.")
    uid: int = Field(ge=0, description="POSIX user id, used by EFS backed servers.")
    gid: int | None = Field(
        default=None, ge=0, description="POSIX group id. Defaults to the uid."
    )

    @field_validator("user_name")
    @classmethod
    def check_user_name(cls, user_name: str) -> str:
        if not USER_NAME_PATTERN.match(user_name):
            msg = (
                f"user_name {user_name!r} must be 3-100 characters of letters, "
                "digits, '_', '@', '.' or '-' and may not start with a symbol"
            )
            raise ValueError(msg)
        return user_name

    @field_validator("public_key")
    @classmethod
    def check_public_key(cls, public_key: str) -> str:
        public_key = public_key.strip()
        if not public_key.startswith(SSH_KEY_TYPES):
            key_types = ", ".join(SSH_KEY_TYPES)
            msg = f"public_key must be an OpenSSH key of type {key_types}"
            raise ValueError(msg)
        return public_key

    @property
    def posix_gid(self) -> int:
        return self.uid if self.gid is None else self.gid


class SFTPServerConfig(AWSBase):
    """Configuration object describing the SFTP server plan to generate."""

    enabled: bool = Field(
        default=True,
        description="Set to false to plan no resources at all.",
    )
    server_name: str
    domain: StorageDomain = StorageDomain.s3
    users: dict[str, SFTPUserConfig] = Field(
        default_factory=dict,
        description=(
            "SFTP users keyed by an arbitrary identifier. Iteration order is preserved "
            "in the generated plan."
        ),
    )
    s3_bucket_name: str | None = Field(
        default=None, description="Existing bucket that stores the home directories."
    )
    s3_actions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_S3_USER_ACTIONS),
        description="Object level S3 actions granted on each user's home prefix.",
    )
    efs_file_system_arn: str | None = Field(
        default=None, description="ARN of the shared EFS filesystem for EFS servers."
    )
    restricted_home: bool = Field(
        default=True,
        description=(
            "Map `/` to the user's home directory (LOGICAL) instead of exposing the "
            "full path of the bucket or filesystem (PATH)."
        ),
    )
    vpc_id: str | None = None
    subnet_ids: list[str] = Field(default_factory=list)
    vpc_security_group_ids: list[str] = Field(default_factory=list)
    security_group_enabled: bool = Field(
        default=True,
        description="Create and manage a security group for a VPC hosted endpoint.",
    )
    allowed_cidr_blocks: list[IPv4Network] = Field(
        default_factory=lambda: [IPv4Network("0.0.0.0/0")],
        description="CIDR blocks allowed to reach the managed security group.",
    )
    eip_enabled: bool = Field(
        default=False,
        description="Allocate one elastic IP per subnet for a VPC hosted endpoint.",
    )
    address_allocation_ids: list[str] = Field(
        default_factory=list,
        description="Pre-allocated elastic IPs to use when eip_enabled is false.",
    )
    domain_name: str | None = None
    zone_id: str | None = None
    dns_ttl: int = Field(default=300, ge=0)
    security_policy_name: str = "TransferSecurityPolicy-2024-01"
    identity_provider_type: Literal["SERVICE_MANAGED"] = "SERVICE_MANAGED"
    protocols: list[Literal["SFTP", "FTPS", "FTP"]] = Field(
        default_factory=lambda: ["SFTP"]
    )
    event_workflow_enabled: bool = False
    processing_function_arn: str | None = None
    workflow_step_timeout: int = Field(default=60, ge=1, le=1800)

    @field_validator("s3_actions")
    @classmethod
    def check_s3_actions(cls, s3_actions: list[str]) -> list[str]:
        invalid_actions = [
            action for action in s3_actions if not action.startswith("s3:")
        ]
        if invalid_actions:
            msg = f"s3_actions may only contain S3 actions, got {invalid_actions}"
            raise ValueError(msg)
        return s3_actions

    @field_validator("efs_file_system_arn")
    @classmethod
    def check_efs_arn(cls, efs_file_system_arn: str | None) -> str | None:
        if efs_file_system_arn and not EFS_ARN_PATTERN.match(efs_file_system_arn):
            msg = f"efs_file_system_arn {efs_file_system_arn!r} is not an EFS ARN"
            raise ValueError(msg)
        return efs_file_system_arn

    @field_validator("processing_function_arn")
    @classmethod
    def check_function_arn(cls, function_arn: str | None) -> str | None:
        if function_arn and not LAMBDA_ARN_PATTERN.match(function_arn):
            msg = f"processing_function_arn {function_arn!r} is not a Lambda ARN"
            raise ValueError(msg)
        return function_arn

    @model_validator(mode="after")
    def check_unique_user_names(self) -> "SFTPServerConfig":
        seen: dict[str, str] = {}
        for user_id, user in self.users.items():
            if user.user_name in seen:
                msg = (
                    f"users: {user_id!r} and {seen[user.user_name]!r} share the "
                    f"user_name {user.user_name!r}"
                )
                raise ValueError(msg)
            seen[user.user_name] = user_id
        return self

    @model_validator(mode="after")
    def check_storage_backend(self) -> "SFTPServerConfig":
        if self.domain == StorageDomain.s3 and not self.s3_bucket_name:
            if self.restricted_home:
                msg = "s3_bucket_name is required for restricted home directories"
            else:
                msg = "s3_bucket_name is required for an S3 backed server"
            raise ValueError(msg)
        # EFS servers map restricted home directories under the filesystem id
        if self.domain == StorageDomain.efs and not self.efs_file_system_arn:
            msg = "efs_file_system_arn is required for an EFS backed server"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_event_workflow(self) -> "SFTPServerConfig":
        if self.event_workflow_enabled and not self.processing_function_arn:
            msg = "processing_function_arn is required when event_workflow_enabled"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_dns(self) -> "SFTPServerConfig":
        if bool(self.domain_name) != bool(self.zone_id):
            pulumi.log.warn(
                "domain_name and zone_id must both be set to create a DNS record, "
                "no record will be planned"
            )
        return self

    @property
    def file_system_id(self) -> str | None:
        if not self.efs_file_system_arn:
            return None
        return self.efs_file_system_arn.rsplit("/", 1)[-1]

    @property
    def processing_function_name(self) -> str | None:
        if not self.processing_function_arn:
            return None
        return self.processing_function_arn.split(":")[6]

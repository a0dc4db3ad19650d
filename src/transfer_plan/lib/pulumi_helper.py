from dataclasses import dataclass

from pulumi import get_stack


@dataclass
class StackInfo:
    """Container class for encapsulating standard information about a stack."""

    name: str
    namespace: str
    env_suffix: str
    env_prefix: str
    full_name: str

    def resource_name(self, base_name: str) -> str:
        """Build a resource name that is unique to this stack's environment."""
        return f"{base_name}-{self.env_suffix}"


def parse_stack() -> StackInfo:
    """Standardized method for extracting stack information.

    Stacks are named `<project namespace>.<Environment>`, for example
    `infrastructure.aws.sftp_servers.Production`.

    :returns: Parsed stack information for use in business logic.

    :rtype: StackInfo
    """
    stack = get_stack()
    stack_name = stack.split(".")[-1]
    namespace = stack.rsplit(".", 1)[0]
    return StackInfo(
        name=stack_name,
        namespace=namespace,
        env_suffix=stack_name.lower(),
        env_prefix=namespace.rsplit(".", 1)[-1],
        full_name=stack,
    )


def stack_tags(
    stack_info: StackInfo, business_unit: str, **extra: str
) -> dict[str, str]:
    """Standard tag set for resources created by a stack."""
    tags = {
        "OU": business_unit,
        "Environment": stack_info.env_suffix,
        "Application": stack_info.env_prefix,
    }
    tags.update(extra)
    return tags

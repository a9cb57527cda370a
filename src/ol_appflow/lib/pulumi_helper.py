from dataclasses import dataclass

import pulumi_aws as aws
from pulumi import get_stack


@dataclass
class StackInfo:
    """Container class for enapsulating standard information about a stack."""

    name: str
    namespace: str
    env_suffix: str
    env_prefix: str
    full_name: str

    def resource_name(self, *parts: str) -> str:
        """Join ``parts`` and the environment suffix into a resource name."""
        return "-".join([*parts, self.env_suffix])


def parse_stack() -> StackInfo:
    """Standardized method for extracting stack information.

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


def aws_environment() -> dict[str, str]:
    """Look up the partition, region and account the AWS provider deploys into."""
    return {
        "partition": aws.get_partition().partition,
        "region": aws.get_region().name,
        "account_id": aws.get_caller_identity().account_id,
    }

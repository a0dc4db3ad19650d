"""Values of a planned SFTP server that are exposed to downstream consumers."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from transfer_plan.plan.intents import AttributeRef, IntentGraph, ResourceKind
from transfer_plan.plan.topology import LOGGING_ROLE_ADDRESS, SERVER_ADDRESS


class PlanOutputs(BaseModel):
    """References to the outputs of a plan.

    Every field is an ``AttributeRef`` into the graph, or ``None`` / empty when the
    plan is disabled. ``resolve`` turns the references into realized values.
    """

    endpoint: AttributeRef | None = None
    server_id: AttributeRef | None = None
    hostname: str | None = None
    logging_role_arn: AttributeRef | None = None
    user_role_arns: dict[str, AttributeRef] = Field(default_factory=dict)

    def resolve(self, lookup: Callable[[AttributeRef], Any]) -> dict[str, Any]:
        """Map every reference through ``lookup``.

        :param lookup: Callable returning the realized value of an attribute.

        :returns: A dictionary of output names to realized values.
        """

        def _resolve(ref: AttributeRef | None) -> Any:
            return None if ref is None else lookup(ref)

        return {
            "endpoint": _resolve(self.endpoint),
            "server_id": _resolve(self.server_id),
            "hostname": self.hostname,
            "logging_role_arn": _resolve(self.logging_role_arn),
            "user_role_arns": {
                user_name: lookup(ref) for user_name, ref in self.user_role_arns.items()
            },
        }


def project_outputs(graph: IntentGraph) -> PlanOutputs:
    """Project the outputs exposed by a planned graph."""
    if SERVER_ADDRESS not in graph:
        return PlanOutputs()
    server = graph.get(SERVER_ADDRESS)
    dns_records = graph.of_kind(ResourceKind.route53_record)
    return PlanOutputs(
        endpoint=server.ref("endpoint"),
        server_id=server.ref("id"),
        hostname=dns_records[0].properties["name"] if dns_records else None,
        logging_role_arn=graph.get(LOGGING_ROLE_ADDRESS).ref("arn"),
        user_role_arns={
            user.key: user.properties["role"]
            for user in graph.of_kind(ResourceKind.transfer_user)
        },
    )

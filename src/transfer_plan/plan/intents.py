"""Resource intents and the dependency graph that holds them.

An intent describes one cloud object that should exist. Intents are addressed as
``<kind>.<name>`` for singletons and ``<kind>.<name>[<key>]`` for members of a keyed
collection, e.g. ``transfer_user.sftp_user[alice]``. Values that only exist once
a resource has been created (ARNs, ids, endpoints) are expressed as
``AttributeRef`` objects inside the intent properties.
"""

import re
from collections.abc import Callable, Iterable, Iterator
from enum import Enum, unique
from graphlib import CycleError, TopologicalSorter
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from transfer_plan.plan.errors import TopologyError

PLAN_FORMAT_VERSION = 1
REF_TAG = "!ref"
ADDRESS_PATTERN = re.compile(
    r"^(?P<kind>[a-z0-9_]+)\.(?P<name>[a-z0-9_]+)(?:\[(?P<key>[^\[\]]+)\])?$"
)


@unique
class ResourceKind(str, Enum):
    """The kinds of cloud objects that appear in a transfer plan."""

    policy_document = "policy_document"
    iam_policy = "iam_policy"
    iam_role = "iam_role"
    security_group = "security_group"
    elastic_ip = "elastic_ip"
    endpoint_details = "endpoint_details"
    transfer_workflow = "transfer_workflow"
    transfer_server = "transfer_server"
    transfer_user = "transfer_user"
    transfer_ssh_key = "transfer_ssh_key"
    route53_record = "route53_record"


def format_address(kind: ResourceKind, name: str, key: str | None = None) -> str:
    address = f"{kind.value}.{name}"
    if key is not None:
        address = f"{address}[{key}]"
    return address


def parse_address(address: str) -> tuple[ResourceKind, str, str | None]:
    """Split an intent address into its kind, name and key.

    :raises TopologyError: If the address is malformed or names an unknown kind.
    """
    match = ADDRESS_PATTERN.match(address)
    if not match:
        msg = f"Malformed intent address {address!r}"
        raise TopologyError(msg)
    try:
        kind = ResourceKind(match["kind"])
    except ValueError as exc:
        msg = f"Unknown resource kind in address {address!r}"
        raise TopologyError(msg) from exc
    return kind, match["name"], match["key"]


class AttributeRef(BaseModel):
    """Reference to an attribute of another intent, resolved at realization time."""

    model_config = ConfigDict(frozen=True)

    address: str
    attribute: str

    def __str__(self) -> str:
        return f"{self.address}.{self.attribute}"

    @classmethod
    def parse(cls, reference: str) -> "AttributeRef":
        address, _, attribute = reference.rpartition(".")
        if not address or not attribute:
            msg = f"Malformed attribute reference {reference!r}"
            raise TopologyError(msg)
        parse_address(address)
        return cls(address=address, attribute=attribute)


def find_references(value: Any) -> Iterator[AttributeRef]:
    """Yield every attribute reference nested inside a property value."""
    if isinstance(value, AttributeRef):
        yield value
    elif isinstance(value, dict):
        for nested in value.values():
            yield from find_references(nested)
    elif isinstance(value, list | tuple):
        for nested in value:
            yield from find_references(nested)


def substitute_references(value: Any, lookup: Callable[[AttributeRef], Any]) -> Any:
    """Return a copy of a property value with every reference replaced by its lookup."""
    if isinstance(value, AttributeRef):
        return lookup(value)
    if isinstance(value, dict):
        return {
            key: substitute_references(nested, lookup) for key, nested in value.items()
        }
    if isinstance(value, list | tuple):
        return [substitute_references(nested, lookup) for nested in value]
    return value


class ResourceIntent(BaseModel):
    """A single cloud object to be created by the provisioning engine."""

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    name: str
    key: str | None = None
    depends_on: frozenset[str] = Field(
        default_factory=frozenset,
        description="Addresses that must exist before this intent is realized.",
    )
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def address(self) -> str:
        return format_address(self.kind, self.name, self.key)

    @property
    def dependencies(self) -> frozenset[str]:
        """Declared dependencies plus every intent referenced from the properties."""
        referenced = {ref.address for ref in find_references(self.properties)}
        return self.depends_on | referenced

    def ref(self, attribute: str) -> AttributeRef:
        return AttributeRef(address=self.address, attribute=attribute)

    def sort_key(self) -> tuple[str, str, str]:
        return (self.kind.value, self.name, self.key or "")


class PlanDumper(yaml.SafeDumper):
    """YAML dumper that writes attribute references as ``!ref`` scalars."""

    def ignore_aliases(self, data: Any) -> bool:  # noqa: ARG002
        return True


class PlanLoader(yaml.SafeLoader):
    """YAML loader that reads ``!ref`` scalars back into attribute references."""


def _represent_ref(dumper: PlanDumper, ref: AttributeRef) -> yaml.ScalarNode:
    return dumper.represent_scalar(REF_TAG, str(ref))


def _construct_ref(loader: PlanLoader, node: yaml.ScalarNode) -> AttributeRef:
    return AttributeRef.parse(loader.construct_scalar(node))


PlanDumper.add_representer(AttributeRef, _represent_ref)
PlanLoader.add_constructor(REF_TAG, _construct_ref)


class IntentGraph:
    """Insertion ordered collection of intents with their dependency edges.

    An intent can only be added once all of its dependencies are present, so
    iterating the graph always yields dependencies before their dependents.
    """

    def __init__(self, intents: Iterable[ResourceIntent] = ()):
        self._intents: dict[str, ResourceIntent] = {}
        for intent in intents:
            self.add(intent)

    def add(self, intent: ResourceIntent) -> ResourceIntent:
        address = intent.address
        if address in self._intents:
            msg = f"Intent {address} has already been planned"
            raise TopologyError(msg)
        missing = sorted(
            dep for dep in intent.dependencies if dep not in self._intents
        )
        if missing:
            msg = f"Intent {address} depends on intents that do not exist: {missing}"
            raise TopologyError(msg)
        self._intents[address] = intent
        return intent

    def get(self, address: str) -> ResourceIntent:
        try:
            return self._intents[address]
        except KeyError as exc:
            msg = f"No intent with address {address} has been planned"
            raise TopologyError(msg) from exc

    def of_kind(self, kind: ResourceKind) -> list[ResourceIntent]:
        return [intent for intent in self._intents.values() if intent.kind == kind]

    def edges(self) -> set[tuple[str, str]]:
        """Return ``(dependency, dependent)`` pairs for every edge in the graph."""
        return {
            (dependency, intent.address)
            for intent in self._intents.values()
            for dependency in intent.dependencies
        }

    def addresses(self) -> list[str]:
        return list(self._intents)

    def __len__(self) -> int:
        return len(self._intents)

    def __iter__(self) -> Iterator[ResourceIntent]:
        return iter(self._intents.values())

    def __contains__(self, address: object) -> bool:
        return address in self._intents

    def __bool__(self) -> bool:
        return bool(self._intents)

    def to_yaml(self) -> str:
        """Render the graph in a stable textual form, ordered by kind, name and key."""
        document = {
            "version": PLAN_FORMAT_VERSION,
            "intents": [
                {
                    "address": intent.address,
                    "kind": intent.kind.value,
                    "name": intent.name,
                    "key": intent.key,
                    "depends_on": sorted(intent.depends_on),
                    "properties": intent.properties,
                }
                for intent in sorted(
                    self._intents.values(), key=ResourceIntent.sort_key
                )
            ],
        }
        return yaml.dump(
            document, Dumper=PlanDumper, sort_keys=True, default_flow_style=False
        )

    @classmethod
    def from_yaml(cls, plan_text: str) -> "IntentGraph":
        """Parse a plan rendered by ``to_yaml`` back into a graph.

        :raises TopologyError: If the document is malformed or its dependencies do
            not form a directed acyclic graph.
        """
        try:
            document = yaml.load(plan_text, Loader=PlanLoader)  # noqa: S506
        except yaml.YAMLError as exc:
            msg = f"Unable to parse plan document: {exc}"
            raise TopologyError(msg) from exc
        if not isinstance(document, dict) or not isinstance(
            document.get("intents"), list
        ):
            msg = "A plan document must be a mapping with a list of intents"
            raise TopologyError(msg)
        if document.get("version") != PLAN_FORMAT_VERSION:
            msg = f"Unsupported plan format version {document.get('version')!r}"
            raise TopologyError(msg)

        intents: dict[str, ResourceIntent] = {}
        for entry in document["intents"]:
            if not isinstance(entry, dict):
                msg = f"Malformed intent entry {entry!r}"
                raise TopologyError(msg)
            declared_address = entry.pop("address", None)
            try:
                intent = ResourceIntent.model_validate(entry)
            except PydanticValidationError as exc:
                msg = f"Malformed intent {declared_address}: {exc}"
                raise TopologyError(msg) from exc
            if declared_address is not None and declared_address != intent.address:
                msg = (
                    f"Intent address {declared_address} does not match its kind, "
                    f"name and key ({intent.address})"
                )
                raise TopologyError(msg)
            if intent.address in intents:
                msg = f"Intent {intent.address} is defined more than once"
                raise TopologyError(msg)
            intents[intent.address] = intent

        sorter = TopologicalSorter(
            {address: intent.dependencies for address, intent in intents.items()}
        )
        try:
            ordered = list(sorter.static_order())
        except CycleError as exc:
            msg = f"Plan dependencies contain a cycle: {exc.args[1]}"
            raise TopologyError(msg) from exc
        graph = cls()
        for address in ordered:
            if address not in intents:
                msg = f"Plan references intent {address} which is not defined"
                raise TopologyError(msg)
            graph.add(intents[address])
        return graph

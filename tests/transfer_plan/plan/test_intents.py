import pytest

from transfer_plan.plan.errors import TopologyError
from transfer_plan.plan.intents import (
    AttributeRef,
    IntentGraph,
    ResourceIntent,
    ResourceKind,
    format_address,
    parse_address,
    substitute_references,
)
from transfer_plan.plan.topology import build_topology


def _policy(name="logging", key=None):
    return ResourceIntent(
        kind=ResourceKind.iam_policy,
        name=name,
        key=key,
        properties={"policy": {"Version": "2012-10-17", "Statement": []}},
    )


def test_addresses():
    assert format_address(ResourceKind.iam_role, "logging") == "iam_role.logging"
    address = format_address(ResourceKind.iam_role, "user_access", "first.last")
    assert address == "iam_role.user_access[first.last]"
    assert parse_address(address) == (
        ResourceKind.iam_role,
        "user_access",
        "first.last",
    )


@pytest.mark.parametrize(
    "address", ["iam_role", "iam_role.", "bucket.logging", "iam_role.logging[]"]
)
def test_malformed_addresses(address):
    with pytest.raises(TopologyError):
        parse_address(address)


def test_attribute_ref_parsing():
    ref = AttributeRef.parse("iam_role.user_access[first.last].arn")
    assert ref.address == "iam_role.user_access[first.last]"
    assert ref.attribute == "arn"
    assert str(ref) == "iam_role.user_access[first.last].arn"


def test_references_count_as_dependencies():
    policy = _policy()
    role = ResourceIntent(
        kind=ResourceKind.iam_role,
        name="logging",
        depends_on={"policy_document.transfer_trust"},
        properties={
            "policy_arn": policy.ref("arn"),
            "nested": [{"a": policy.ref("id")}],
        },
    )
    assert role.dependencies == {
        "iam_policy.logging",
        "policy_document.transfer_trust",
    }


def test_graph_rejects_missing_dependencies():
    graph = IntentGraph()
    policy = _policy()
    role = ResourceIntent(
        kind=ResourceKind.iam_role,
        name="logging",
        properties={"policy_arn": policy.ref("arn")},
    )
    with pytest.raises(TopologyError, match=r"iam_policy\.logging"):
        graph.add(role)
    graph.add(policy)
    graph.add(role)
    assert graph.edges() == {("iam_policy.logging", "iam_role.logging")}


def test_graph_rejects_duplicates():
    graph = IntentGraph([_policy()])
    with pytest.raises(TopologyError, match="already"):
        graph.add(_policy())


def test_graph_lookup():
    graph = IntentGraph([_policy(), _policy("user_access", "alice")])
    assert len(graph) == 2
    assert "iam_policy.user_access[alice]" in graph
    assert graph.get("iam_policy.logging").name == "logging"
    assert [intent.key for intent in graph.of_kind(ResourceKind.iam_policy)] == [
        None,
        "alice",
    ]
    with pytest.raises(TopologyError):
        graph.get("iam_policy.missing")


def test_substitute_references():
    ref = AttributeRef(address="iam_role.logging", attribute="arn")
    value = {"roles": [ref, "literal"], "role": ref}
    substituted = substitute_references(value, lambda item: f"<{item}>")
    assert substituted == {
        "roles": ["<iam_role.logging.arn>", "literal"],
        "role": "<iam_role.logging.arn>",
    }
    assert value["role"] is ref


def test_yaml_round_trip(make_config, mock_subnet_ids, function_arn):
    config = make_config(
        vpc_id="vpc-12345678",
        subnet_ids=mock_subnet_ids,
        eip_enabled=True,
        event_workflow_enabled=True,
        processing_function_arn=function_arn,
        domain_name="sftp.example.com",
        zone_id="Z1234567890ABC",
    )
    graph = build_topology(config)
    parsed = IntentGraph.from_yaml(graph.to_yaml())
    assert set(parsed.addresses()) == set(graph.addresses())
    assert parsed.edges() == graph.edges()
    for intent in graph:
        assert parsed.get(intent.address) == intent
    assert parsed.to_yaml() == graph.to_yaml()


def test_yaml_is_sorted_by_kind_and_key(make_config):
    rendered = build_topology(make_config()).to_yaml()
    addresses = [
        line.split(": ", 1)[1]
        for line in rendered.splitlines()
        if line.startswith("- address: ")
    ]
    assert addresses == sorted(
        addresses, key=lambda address: parse_address(address)[0].value
    )
    assert "!ref 'iam_policy.user_access[alice].arn'" in rendered or (
        "!ref iam_policy.user_access[alice].arn" in rendered
    )


def test_from_yaml_rejects_unknown_dependencies():
    plan_text = """
version: 1
intents:
- address: iam_role.logging
  kind: iam_role
  name: logging
  key: null
  depends_on: [iam_policy.logging]
  properties: {}
"""
    with pytest.raises(TopologyError, match="not defined"):
        IntentGraph.from_yaml(plan_text)


def test_from_yaml_rejects_cycles():
    plan_text = """
version: 1
intents:
- kind: iam_role
  name: logging
  depends_on: [iam_policy.logging]
- kind: iam_policy
  name: logging
  properties:
    role: !ref iam_role.logging.arn
"""
    with pytest.raises(TopologyError, match="cycle"):
        IntentGraph.from_yaml(plan_text)


@pytest.mark.parametrize(
    "plan_text",
    [
        "- not a mapping",
        "version: 2\nintents: []",
        "version: 1\nintents:\n- kind: bucket\n  name: logging",
        "version: 1\nintents:\n- address: iam_role.other\n  kind: iam_role\n"
        "  name: logging",
        "version: [1",
        "!!python/object:os.system {}",
    ],
)
def test_from_yaml_rejects_malformed_documents(plan_text):
    with pytest.raises(TopologyError):
        IntentGraph.from_yaml(plan_text)


def test_empty_graph_round_trip():
    assert len(IntentGraph.from_yaml(IntentGraph().to_yaml())) == 0


def test_from_yaml_rejects_duplicate_intents():
    plan_text = """
version: 1
intents:
- kind: iam_policy
  name: logging
- kind: iam_policy
  name: logging
"""
    with pytest.raises(TopologyError, match="more than once"):
        IntentGraph.from_yaml(plan_text)

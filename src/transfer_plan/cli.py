"""Render the plan for an SFTP server configuration without creating anything."""

import json
import sys
from collections import Counter
from enum import Enum
from pathlib import Path
from typing import Any

import cyclopts
import yaml

from transfer_plan.plan.config import SFTPServerConfig
from transfer_plan.plan.errors import TopologyError, ValidationError
from transfer_plan.plan.intents import AttributeRef, IntentGraph, substitute_references
from transfer_plan.plan.outputs import project_outputs
from transfer_plan.plan.policies import PLAN_PARLIAMENT_CONFIG, lint_plan_policies
from transfer_plan.plan.topology import build_topology


class OutputFormat(str, Enum):
    yaml = "yaml"
    json = "json"
    summary = "summary"


app = cyclopts.App(help="Plan AWS Transfer Family SFTP servers")


def load_config(config_path: Path) -> SFTPServerConfig:
    """Load and validate an SFTP server configuration from a YAML file."""
    with config_path.open() as config_file:
        settings = yaml.safe_load(config_file) or {}
    if not isinstance(settings, dict):
        msg = "the configuration file must contain a mapping of settings"
        raise ValueError(msg)
    return SFTPServerConfig(**settings)


def _plan(config_path: Path) -> IntentGraph:
    try:
        return build_topology(load_config(config_path))
    except (OSError, yaml.YAMLError, ValidationError, ValueError, TopologyError) as exc:
        print(f"Unable to plan {config_path}: {exc}", file=sys.stderr)
        sys.exit(1)


def _ref_as_text(ref: AttributeRef) -> str:
    return f"${{{ref}}}"


def plan_as_json(graph: IntentGraph) -> str:
    return json.dumps(
        [
            {
                "address": intent.address,
                "depends_on": sorted(intent.dependencies),
                "properties": substitute_references(intent.properties, _ref_as_text),
            }
            for intent in graph
        ],
        indent=2,
    )


def plan_summary(graph: IntentGraph) -> str:
    counts = Counter(intent.kind.value for intent in graph)
    lines = [f"{kind}: {count}" for kind, count in sorted(counts.items())]
    lines.append(f"total: {len(graph)}")
    return "\n".join(lines)


@app.command
def plan(
    config: Path,
    *,
    output: OutputFormat = OutputFormat.yaml,
    lint: bool = False,
) -> None:
    """Print the resources planned for an SFTP server configuration.

    Args:
        config: Path to the YAML configuration of the server.
        output: Format of the rendered plan.
        lint: Check every planned IAM policy with parliament.
    """
    graph = _plan(config)
    if lint:
        try:
            linted = lint_plan_policies(graph, PLAN_PARLIAMENT_CONFIG)
        except Exception as exc:  # noqa: BLE001
            print(f"IAM policy lint failed for {config}: {exc}", file=sys.stderr)
            sys.exit(1)
        print(f"Linted {len(linted)} IAM policies", file=sys.stderr)
    if output == OutputFormat.json:
        print(plan_as_json(graph))
    elif output == OutputFormat.summary:
        print(plan_summary(graph))
    else:
        print(graph.to_yaml(), end="")


@app.command
def outputs(config: Path) -> None:
    """Print the outputs that a server configuration exposes once created.

    Args:
        config: Path to the YAML configuration of the server.
    """
    graph = _plan(config)
    projected: dict[str, Any] = project_outputs(graph).resolve(_ref_as_text)
    print(json.dumps(projected, indent=2))


if __name__ == "__main__":
    app()

"""
Workflow Parser - YAML text to a validated Workflow graph.

Two document shapes are accepted:

Graph form::

    name: example
    nodes:
      n1: {type: set, properties: {name: x, value: "1"}}
      n2: {type: if, properties: {condition: "{{x}} > 0"}}
    edges:
      - {from: n1, to: n2}
      - {from: n2, to: n3, label: "true"}

List form (next / trueNext / falseNext, with fall-through to the next
listed node)::

    nodes:
      - id: n1
        type: set
        name: x
        value: "1"

The list form is rewritten into the graph form before validation so both
share one set of checks.
"""

import json
import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from hubflow.models import NODE_PROPERTY_MODELS, Edge, NodeType, Workflow, WorkflowNode

from .errors import ParseError, UnknownNodeType, ValidationError

logger = logging.getLogger('workflow.parser')

END_MARKER = "end"
_FLOW_KEYS = ("id", "type", "next", "trueNext", "falseNext")


def parse_workflow(text: str, name: Optional[str] = None) -> Workflow:
    """
    Parse a YAML workflow document.

    Args:
        text: Document text
        name: Workflow to select when the document holds a ``workflows`` list

    Returns:
        Validated Workflow

    Raises:
        ParseError: Malformed document, unknown node type or bad edge
        ValidationError: A node is missing a required property
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML: {e}")

    if not isinstance(data, dict):
        raise ParseError("Workflow document must be a mapping")

    return parse_workflow_data(_select_workflow(data, name))


def parse_workflow_data(data: Dict[str, Any]) -> Workflow:
    """Validate an already-loaded workflow mapping."""
    raw_nodes = data.get("nodes")
    if not raw_nodes:
        raise ParseError("Workflow has no nodes")

    if isinstance(raw_nodes, list):
        node_specs, edge_specs = _convert_list_form(raw_nodes)
    elif isinstance(raw_nodes, dict):
        node_specs = _read_graph_nodes(raw_nodes)
        edge_specs = data.get("edges") or []
        if not isinstance(edge_specs, list):
            raise ParseError("'edges' must be a list")
    else:
        raise ParseError("'nodes' must be a mapping or a list")

    nodes = {node_id: _build_node(node_id, spec) for node_id, spec in node_specs.items()}
    edges = [_build_edge(spec) for spec in edge_specs]
    _validate_edges(nodes, edges)

    start = data.get("start") or next(iter(nodes))
    if start not in nodes:
        raise ParseError(f"Start node '{start}' does not exist")

    workflow_name = data.get("name")
    logger.debug(f"Parsed workflow {workflow_name!r}: {len(nodes)} nodes, {len(edges)} edges")
    return Workflow(
        name=str(workflow_name) if workflow_name is not None else None,
        nodes=nodes,
        edges=edges,
        start=start,
    )


def normalize_property_value(value: Any) -> Optional[str]:
    """
    Normalize one raw property value to its string form.

    Returns None for values that should be dropped (null or empty).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    text = str(value)
    return text if text != "" else None


def _select_workflow(data: Dict[str, Any], name: Optional[str]) -> Dict[str, Any]:
    workflows = data.get("workflows")
    if workflows is None:
        return data
    if not isinstance(workflows, list) or not workflows:
        raise ParseError("'workflows' must be a non-empty list")
    if not name:
        return workflows[0]
    for candidate in workflows:
        if isinstance(candidate, dict) and candidate.get("name") == name:
            return candidate
    raise ParseError(f"Workflow '{name}' not found in document")


def _normalize_properties(raw: Dict[str, Any]) -> Dict[str, str]:
    properties = {}
    for key, value in raw.items():
        normalized = normalize_property_value(value)
        if normalized is not None:
            properties[str(key)] = normalized
    return properties


def _read_graph_nodes(raw_nodes: Dict[Any, Any]) -> Dict[str, Dict[str, Any]]:
    node_specs = {}
    for node_id, spec in raw_nodes.items():
        if not isinstance(spec, dict):
            raise ParseError(f"Node '{node_id}' must be a mapping")
        if "properties" in spec:
            raw_props = spec.get("properties") or {}
            if not isinstance(raw_props, dict):
                raise ParseError(f"Node '{node_id}': 'properties' must be a mapping")
        else:
            raw_props = {k: v for k, v in spec.items() if k != "type"}
        node_specs[str(node_id)] = {
            "type": spec.get("type"),
            "properties": _normalize_properties(raw_props),
        }
    return node_specs


def _convert_list_form(raw_nodes: List[Any]) -> Tuple[Dict[str, Dict[str, Any]], List[Dict[str, Any]]]:
    """Rewrite list-form nodes (next/trueNext/falseNext) into nodes + edges."""
    ids: List[str] = []
    seen: Counter = Counter()
    for index, raw in enumerate(raw_nodes):
        if not isinstance(raw, dict):
            raise ParseError(f"Node #{index + 1} must be a mapping")
        base_id = str(raw.get("id") or f"node-{index + 1}")
        seen[base_id] += 1
        ids.append(base_id if seen[base_id] == 1 else f"{base_id}_{seen[base_id]}")

    node_specs: Dict[str, Dict[str, Any]] = {}
    edge_specs: List[Dict[str, Any]] = []

    for index, raw in enumerate(raw_nodes):
        node_id = ids[index]
        fallthrough = ids[index + 1] if index + 1 < len(ids) else None
        raw_props = {k: v for k, v in raw.items() if k not in _FLOW_KEYS}
        node_type = raw.get("type")
        node_specs[node_id] = {"type": node_type, "properties": _normalize_properties(raw_props)}

        if node_type in (NodeType.IF.value, NodeType.WHILE.value):
            true_next = raw.get("trueNext")
            if not true_next:
                raise ParseError(f"Node '{node_id}' ({node_type}) requires 'trueNext'")
            false_next = raw.get("falseNext") or fallthrough
            if str(true_next) != END_MARKER:
                edge_specs.append({"from": node_id, "to": str(true_next), "label": "true"})
            if false_next and str(false_next) != END_MARKER:
                edge_specs.append({"from": node_id, "to": str(false_next), "label": "false"})
        else:
            next_id = raw.get("next") or fallthrough
            if next_id and str(next_id) != END_MARKER:
                edge_specs.append({"from": node_id, "to": str(next_id)})

    return node_specs, edge_specs


def _build_node(node_id: str, spec: Dict[str, Any]) -> WorkflowNode:
    raw_type = spec.get("type")
    if not raw_type:
        raise ParseError(f"Node '{node_id}' is missing 'type'", node_id)
    try:
        node_type = NodeType(raw_type)
    except ValueError:
        raise UnknownNodeType(str(raw_type), node_id)

    model = NODE_PROPERTY_MODELS[node_type]
    try:
        properties = model.model_validate(spec["properties"])
    except PydanticValidationError as e:
        problems = "; ".join(
            f"'{'.'.join(str(p) for p in err['loc'])}': {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Node '{node_id}' ({node_type.value}) has invalid properties: {problems}", node_id)

    return WorkflowNode(id=node_id, type=node_type, properties=properties)


def _build_edge(spec: Any) -> Edge:
    if not isinstance(spec, dict):
        raise ParseError(f"Edge must be a mapping: {spec!r}")
    source = spec.get("from")
    target = spec.get("to")
    if source is None or target is None:
        raise ParseError(f"Edge requires 'from' and 'to': {spec!r}")
    label = spec.get("label")
    if label is not None:
        label = normalize_property_value(label)
        if label not in ("true", "false"):
            raise ParseError(f"Edge label must be 'true' or 'false': {source} -> {target}")
    return Edge(source=str(source), target=str(target), label=label)


def _validate_edges(nodes: Dict[str, WorkflowNode], edges: List[Edge]) -> None:
    outgoing: Dict[str, List[Edge]] = {}
    for edge in edges:
        if edge.source not in nodes or edge.target not in nodes:
            raise ParseError(f"Invalid edge reference: {edge.source} -> {edge.target}")
        outgoing.setdefault(edge.source, []).append(edge)

    for node_id, node_edges in outgoing.items():
        node = nodes[node_id]
        if node.type.is_branching:
            labels = Counter(edge.label for edge in node_edges)
            if labels.get(None):
                raise ParseError(f"Node '{node_id}' ({node.type.value}) has an unlabeled outgoing edge", node_id)
            for label, count in labels.items():
                if count > 1:
                    raise ParseError(f"Node '{node_id}' has duplicate '{label}' edges", node_id)
        else:
            if any(edge.label is not None for edge in node_edges):
                raise ParseError(f"Node '{node_id}' ({node.type.value}) cannot have labeled edges", node_id)
            if len(node_edges) > 1:
                raise ParseError(f"Node '{node_id}' has more than one successor", node_id)

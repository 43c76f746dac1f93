"""
Tests for YAML workflow parsing.
"""

import pytest

from hubflow.engine.errors import ParseError, UnknownNodeType, ValidationError
from hubflow.engine.parser import normalize_property_value, parse_workflow
from hubflow.models import NodeType, SetProperties


GRAPH_DOC = """
name: counter
nodes:
  init: {type: variable, properties: {name: count, value: 0}}
  loop: {type: while, properties: {condition: "{{count}} < 3"}}
  inc: {type: set, properties: {name: count, value: "{{count}} + 1"}}
  done: {type: variable, properties: {name: finished, value: true}}
edges:
  - {from: init, to: loop}
  - {from: loop, to: inc, label: "true"}
  - {from: loop, to: done, label: "false"}
  - {from: inc, to: loop}
"""


class TestGraphForm:
    """Nodes as a mapping plus an explicit edge list"""

    def test_parses_nodes_and_edges(self):
        workflow = parse_workflow(GRAPH_DOC)

        assert workflow.name == "counter"
        assert workflow.start == "init"
        assert set(workflow.nodes) == {"init", "loop", "inc", "done"}
        assert workflow.get_node("loop").type == NodeType.WHILE
        assert workflow.successor("loop", "true") == "inc"
        assert workflow.successor("loop", "false") == "done"
        assert workflow.successor("done") is None

    def test_properties_are_typed(self):
        workflow = parse_workflow(GRAPH_DOC)

        props = workflow.get_node("inc").properties
        assert isinstance(props, SetProperties)
        assert props.value == "{{count}} + 1"

    def test_scalars_are_normalized_to_strings(self):
        workflow = parse_workflow(GRAPH_DOC)

        assert workflow.get_node("init").properties.value == "0"
        assert workflow.get_node("done").properties.value == "true"

    def test_explicit_start(self):
        doc = GRAPH_DOC.replace("name: counter", "name: counter\nstart: done")
        assert parse_workflow(doc).start == "done"

    def test_flat_properties_without_properties_key(self):
        workflow = parse_workflow("""
nodes:
  a: {type: variable, name: x, value: hello}
""")
        assert workflow.get_node("a").properties.name == "x"


class TestListForm:
    """Nodes as a list with next / trueNext / falseNext"""

    def test_fallthrough_and_branches(self):
        workflow = parse_workflow("""
nodes:
  - id: a
    type: variable
    name: x
    value: 1
  - id: check
    type: if
    condition: "{{x}} == 1"
    trueNext: matched
    falseNext: end
  - id: matched
    type: variable
    name: y
    value: ok
""")
        assert workflow.start == "a"
        assert workflow.successor("a") == "check"
        assert workflow.successor("check", "true") == "matched"
        assert workflow.successor("check", "false") is None

    def test_missing_ids_are_generated(self):
        workflow = parse_workflow("""
nodes:
  - type: variable
    name: a
  - type: variable
    name: b
""")
        assert list(workflow.nodes) == ["node-1", "node-2"]
        assert workflow.successor("node-1") == "node-2"

    def test_duplicate_ids_are_suffixed(self):
        workflow = parse_workflow("""
nodes:
  - {id: step, type: variable, name: a}
  - {id: step, type: variable, name: b}
""")
        assert list(workflow.nodes) == ["step", "step_2"]

    def test_if_requires_true_next(self):
        with pytest.raises(ParseError, match="trueNext"):
            parse_workflow("""
nodes:
  - {id: c, type: if, condition: "1 == 1"}
""")


class TestMultiWorkflowDocuments:

    DOC = """
workflows:
  - name: first
    nodes:
      a: {type: variable, name: x, value: 1}
  - name: second
    nodes:
      b: {type: variable, name: y, value: 2}
"""

    def test_first_workflow_by_default(self):
        assert parse_workflow(self.DOC).name == "first"

    def test_select_by_name(self):
        assert parse_workflow(self.DOC, name="second").start == "b"

    def test_unknown_name(self):
        with pytest.raises(ParseError, match="not found"):
            parse_workflow(self.DOC, name="third")


class TestParseErrors:

    def test_invalid_yaml(self):
        with pytest.raises(ParseError, match="Invalid YAML"):
            parse_workflow("nodes: [unclosed")

    def test_not_a_mapping(self):
        with pytest.raises(ParseError):
            parse_workflow("- just\n- a list")

    def test_no_nodes(self):
        with pytest.raises(ParseError, match="no nodes"):
            parse_workflow("name: empty")

    def test_unknown_node_type(self):
        with pytest.raises(UnknownNodeType) as exc_info:
            parse_workflow("nodes:\n  a: {type: teleport}")
        assert exc_info.value.node_id == "a"

    def test_missing_type(self):
        with pytest.raises(ParseError, match="missing 'type'"):
            parse_workflow("nodes:\n  a: {properties: {name: x}}")

    def test_edge_to_unknown_node(self):
        with pytest.raises(ParseError, match="Invalid edge reference"):
            parse_workflow("""
nodes:
  a: {type: variable, name: x}
edges:
  - {from: a, to: ghost}
""")

    def test_unlabeled_edge_from_if(self):
        with pytest.raises(ParseError, match="unlabeled"):
            parse_workflow("""
nodes:
  c: {type: if, condition: "1 == 1"}
  a: {type: variable, name: x}
edges:
  - {from: c, to: a}
""")

    def test_labeled_edge_from_plain_node(self):
        with pytest.raises(ParseError, match="cannot have labeled edges"):
            parse_workflow("""
nodes:
  a: {type: variable, name: x}
  b: {type: variable, name: y}
edges:
  - {from: a, to: b, label: "true"}
""")

    def test_two_successors(self):
        with pytest.raises(ParseError, match="more than one successor"):
            parse_workflow("""
nodes:
  a: {type: variable, name: x}
  b: {type: variable, name: y}
  c: {type: variable, name: z}
edges:
  - {from: a, to: b}
  - {from: a, to: c}
""")

    def test_missing_required_property(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_workflow("nodes:\n  s: {type: set, properties: {name: x}}")
        assert "value" in exc_info.value.message
        assert exc_info.value.node_id == "s"


class TestNormalizePropertyValue:

    @pytest.mark.parametrize("value,expected", [
        (None, None),
        ("", None),
        (True, "true"),
        (False, "false"),
        (3, "3"),
        (1.5, "1.5"),
        ({"a": 1}, '{"a": 1}'),
        (["x"], '["x"]'),
    ])
    def test_values(self, value, expected):
        assert normalize_property_value(value) == expected

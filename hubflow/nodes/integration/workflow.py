"""
Workflow Node - Run another workflow document as a nested frame

The child gets a fresh variable scope. Only what the node declares crosses
the boundary:
    - input:  JSON {childVar: "template"} or "childVar=parentVar, ..."
    - output: JSON {parentVar: "childVar"} or "parentVar=childVar, ..."
    - prefix: copy every child variable back as <prefix><name>
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ParseError, ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.engine.parser import parse_workflow
from hubflow.models import NodeType, WorkflowCallProperties
from hubflow.utils import make_json_serializable


def _parse_pairs(text: str) -> List[Tuple[str, str]]:
    pairs = []
    for item in text.split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            pairs.append((key.strip(), value.strip()))
    return pairs


def _parse_json_mapping(text: str) -> Optional[Dict[str, Any]]:
    try:
        mapping = json.loads(text)
    except ValueError:
        return None
    if not isinstance(mapping, dict):
        raise ValidationError(f"Variable mapping must be a JSON object: {text}")
    return mapping


class WorkflowNode(ExecutableNode):

    category = "integration"

    @property
    def node_type(self) -> NodeType:
        return NodeType.WORKFLOW

    async def execute(self, properties: WorkflowCallProperties, context: NodeExecutionContext) -> NodeResult:
        if not context.has_service("workflow_loader"):
            raise ValidationError("Sub-workflow execution not available: no workflow loader configured")
        loader = context.get_service("workflow_loader")

        text = await asyncio.to_thread(loader.load, properties.path)
        try:
            workflow = parse_workflow(text, name=properties.name or None)
        except ParseError as e:
            raise ParseError(f"Sub-workflow '{properties.path}': {e.message}", node_id=context.node.id)

        inputs = self._map_inputs(properties.input, context)
        child = await context.run_subworkflow(workflow, inputs)

        outputs = self._map_outputs(properties, child)
        for name, value in outputs.items():
            context.save(name, value)

        return NodeResult(
            output={"workflow": workflow.name or properties.path, "inputs": list(inputs), "outputs": make_json_serializable(outputs)},
            message=f"Ran sub-workflow {workflow.name or properties.path}",
        )

    def _map_inputs(self, raw: Optional[str], context: NodeExecutionContext) -> Dict[str, Any]:
        if not raw:
            return {}
        mapping = _parse_json_mapping(raw)
        if mapping is not None:
            return {
                key: context.resolver.resolve_value(value) if isinstance(value, str) else value
                for key, value in mapping.items()
            }

        inputs: Dict[str, Any] = {}
        for child_var, source in _parse_pairs(context.resolve(raw)):
            # A parent variable name passes its value, anything else is a literal
            inputs[child_var] = context.variables[source] if context.variables.has(source) else source
        return inputs

    def _map_outputs(self, properties: WorkflowCallProperties, child) -> Dict[str, Any]:
        outputs: Dict[str, Any] = {}
        if properties.output:
            mapping = _parse_json_mapping(properties.output)
            pairs = list(mapping.items()) if mapping is not None else _parse_pairs(properties.output)
            for parent_var, child_var in pairs:
                if isinstance(child_var, str) and child.has(child_var):
                    outputs[parent_var] = child[child_var]
        if properties.prefix:
            for name, value in child.items():
                outputs[f"{properties.prefix}{name}"] = value
        return outputs

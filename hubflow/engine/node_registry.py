"""
Node Registry - Discovers and manages node handlers
"""

import importlib
import inspect
import logging
import pkgutil
from typing import Dict, List, Optional, Type

from hubflow.models import NodeType

from .errors import UnknownNodeType
from .node_interface import ExecutableNode, InteractiveNode, NodeBase

logger = logging.getLogger('workflow.registry')


class NodeRegistry:
    """
    Registry for node handlers.

    Handlers can be registered manually or discovered from the category
    packages under hubflow.nodes (control, ai, drive, prompt, integration).

    Note: Registry stores handler CLASSES, not instances. Each get_handler()
    call creates a fresh instance to avoid state leakage between visits.
    """

    def __init__(self):
        self._handler_classes: Dict[NodeType, Type[NodeBase]] = {}

    def register(self, handler_class: Type[NodeBase]) -> None:
        """
        Register a handler class.

        Raises:
            ValueError: If a handler for the same node type is registered
        """
        node_type = handler_class().node_type
        if node_type in self._handler_classes:
            raise ValueError(f"Handler for '{node_type.value}' is already registered")
        self._handler_classes[node_type] = handler_class

    def get_handler(self, node_type: NodeType | str) -> NodeBase:
        """
        Get a fresh handler instance for node_type.

        Raises:
            UnknownNodeType: If no handler is registered
        """
        try:
            key = NodeType(node_type)
        except ValueError:
            raise UnknownNodeType(str(node_type))
        if key not in self._handler_classes:
            raise UnknownNodeType(key.value)
        return self._handler_classes[key]()

    def has_handler(self, node_type: NodeType | str) -> bool:
        try:
            return NodeType(node_type) in self._handler_classes
        except ValueError:
            return False

    def list_node_types(self) -> List[str]:
        return [node_type.value for node_type in self._handler_classes]

    def missing_node_types(self) -> List[str]:
        """Node kinds that have no registered handler"""
        return [t.value for t in NodeType if t not in self._handler_classes]

    def unregister(self, node_type: NodeType | str) -> None:
        key = NodeType(node_type)
        if key not in self._handler_classes:
            raise KeyError(f"Handler for '{key.value}' not found in registry")
        del self._handler_classes[key]

    def clear(self) -> None:
        self._handler_classes.clear()

    def discover_nodes(self, package: str = "hubflow.nodes") -> int:
        """
        Import every module under the category packages and register the
        concrete handler classes they define.

        Args:
            package: Root package holding one subpackage per category

        Returns:
            Number of handlers registered
        """
        root = importlib.import_module(package)
        registered_count = 0

        for category in pkgutil.iter_modules(root.__path__):
            if not category.ispkg or category.name.startswith("_"):
                continue
            category_pkg = importlib.import_module(f"{package}.{category.name}")

            for module_info in pkgutil.iter_modules(category_pkg.__path__):
                if module_info.name.startswith("_"):
                    continue
                module = importlib.import_module(f"{package}.{category.name}.{module_info.name}")

                for _, obj in inspect.getmembers(module, inspect.isclass):
                    if (issubclass(obj, NodeBase)
                            and obj.__module__ == module.__name__
                            and obj not in (NodeBase, ExecutableNode, InteractiveNode)
                            and not inspect.isabstract(obj)):
                        self.register(obj)
                        registered_count += 1

        logger.debug(f"Discovered {registered_count} node handlers")
        return registered_count


_default_registry: Optional[NodeRegistry] = None


def get_default_registry() -> NodeRegistry:
    """Registry with every built-in handler, discovered once per process."""
    global _default_registry
    if _default_registry is None:
        registry = NodeRegistry()
        registry.discover_nodes()
        missing = registry.missing_node_types()
        if missing:
            logger.warning(f"No handler registered for node types: {missing}")
        _default_registry = registry
    return _default_registry

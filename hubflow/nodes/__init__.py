"""
Node handlers, one module per node kind, grouped by category.

Handlers are discovered by NodeRegistry.discover_nodes().
"""

"""
HubFlow - workflow execution engine.

Runs YAML-defined graphs of typed nodes (control flow, AI generation, Drive
storage, interactive prompts and integrations) and streams progress to an
observer over Server-Sent Events.
"""

__version__ = "1.0.0"

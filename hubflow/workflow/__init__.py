"""
Workflow Execution Module

- interpreter: graph walking state machine
- processor: WorkflowProcessor orchestrator used by the API
"""

from .interpreter import WorkflowInterpreter
from .processor import WorkflowProcessor

__all__ = ['WorkflowInterpreter', 'WorkflowProcessor']

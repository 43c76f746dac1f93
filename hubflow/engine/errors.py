"""
Workflow error taxonomy.

Node handlers raise these; the interpreter turns any of them into an
``error`` step and a terminal ``error`` event. API routes map ParseError
to HTTP 400.
"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message: str, node_id: Optional[str] = None):
        self.message = message
        self.node_id = node_id
        super().__init__(message)


class ParseError(WorkflowError):
    """Malformed workflow document or invalid graph reference"""


class UnknownNodeType(ParseError):
    """Node kind not present in the handler registry"""

    def __init__(self, node_type: str, node_id: Optional[str] = None):
        self.node_type = node_type
        super().__init__(f"Unknown node type: '{node_type}'", node_id)


class ValidationError(WorkflowError):
    """Missing required property, bad property value, unmatched branch label"""


class LoopLimitExceeded(ValidationError):
    """A while node or the whole run exceeded its iteration budget"""


class RecursionLimitExceeded(ValidationError):
    """Sub-workflow nesting went deeper than allowed"""


class TemplateError(WorkflowError):
    """Template could not be compiled or rendered"""


class ExternalCallError(WorkflowError):
    """Raised when an AI, Drive, HTTP or MCP call fails"""

    def __init__(
        self,
        service: str,
        message: str,
        original_error: Exception = None,
        node_id: Optional[str] = None
    ):
        self.service = service
        self.original_error = original_error
        super().__init__(f"{service} call failed: {message}", node_id)


class ExecutionCancelled(WorkflowError):
    """Cooperative cancellation observed at a node boundary or prompt wait"""

    def __init__(self, reason: str = "Execution cancelled", node_id: Optional[str] = None):
        super().__init__(reason, node_id)


class PromptDismissed(WorkflowError):
    """The observer answered a prompt with null"""

    def __init__(self, node_id: Optional[str] = None):
        super().__init__("Input cancelled by user", node_id)

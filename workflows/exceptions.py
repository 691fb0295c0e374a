"""Custom exceptions for the workflow engine."""

from typing import Any, Dict, Iterable, Optional


class WorkflowEngineError(Exception):
    """Base exception for all workflow engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class WorkflowDefinitionError(WorkflowEngineError):
    """Raised when a workflow definition cannot be parsed."""


class CycleError(WorkflowEngineError):
    """Raised when the dependency graph of a workflow is not acyclic."""

    def __init__(self, remaining_nodes: Iterable[str], details: Optional[Dict[str, Any]] = None):
        self.remaining_nodes = sorted(remaining_nodes)
        super().__init__(
            f"Workflow contains a dependency cycle among nodes: {', '.join(self.remaining_nodes)}",
            details,
        )


class StaleReferenceError(WorkflowEngineError):
    """Raised in strict mode when a node or its script cannot be found."""

    def __init__(self, node_id: str, script_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        if script_id is None:
            message = f"Node '{node_id}' is not part of the workflow"
        else:
            message = f"Node '{node_id}' references unknown script '{script_id}'"
        super().__init__(message, details)
        self.node_id = node_id
        self.script_id = script_id

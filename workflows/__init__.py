"""
Workflow System

Chains scripts into workflows whose nodes run in dependency order, with the
output of earlier nodes feeding the parameters of later ones.

This module provides:
- Workflow definition and validation (YAML/JSON-based)
- Dependency ordering with cycle detection
- Parameter resolution from constants, node outputs and user input
- A controller that runs workflows on a worker thread and publishes run state
- Workflow persistence and export/import
"""

from .definition import (
    ConstantMapping,
    OutputChannel,
    OutputMapping,
    ParameterMapping,
    UserInputMapping,
    Workflow,
    WorkflowConnection,
    WorkflowNode,
)
from .engine import WorkflowController
from .exceptions import CycleError, StaleReferenceError, WorkflowDefinitionError, WorkflowEngineError
from .resolver import ParameterResolver
from .scheduler import GraphScheduler, topological_order
from .state import NodeOutput, RunSnapshot, RunStatus
from .store import InMemoryWorkflowStore, JsonWorkflowStore, WorkflowStore

__all__ = [
    "ConstantMapping",
    "OutputChannel",
    "OutputMapping",
    "ParameterMapping",
    "UserInputMapping",
    "Workflow",
    "WorkflowConnection",
    "WorkflowNode",
    "WorkflowController",
    "CycleError",
    "StaleReferenceError",
    "WorkflowDefinitionError",
    "WorkflowEngineError",
    "ParameterResolver",
    "GraphScheduler",
    "topological_order",
    "NodeOutput",
    "RunSnapshot",
    "RunStatus",
    "InMemoryWorkflowStore",
    "JsonWorkflowStore",
    "WorkflowStore",
]

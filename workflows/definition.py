"""
Workflow Definition

Parse, validate, and represent workflows: nodes that run scripts, the
connections ordering them, and the mappings feeding node parameters.
"""

import json
import uuid
import yaml
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import WorkflowDefinitionError


class OutputChannel(str, Enum):
    """Observable facet of a finished node's result."""

    STDOUT = "stdout"
    STDERR = "stderr"
    EXIT_CODE = "exitCode"
    WORKING_DIRECTORY = "workingDirectory"


@dataclass(frozen=True)
class ConstantMapping:
    """Parameter takes a fixed value."""

    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "constant", "value": self.value}


@dataclass(frozen=True)
class OutputMapping:
    """Parameter takes a channel of an earlier node's output."""

    node_id: str
    output_type: OutputChannel = OutputChannel.STDOUT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "output",
            "nodeId": self.node_id,
            "outputType": self.output_type.value,
        }


@dataclass(frozen=True)
class UserInputMapping:
    """Parameter is supplied by the user when the workflow runs."""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "userInput"}


ParameterMapping = Union[ConstantMapping, OutputMapping, UserInputMapping]


def mapping_from_dict(data: Dict[str, Any]) -> ParameterMapping:
    """
    Create a parameter mapping from its dictionary form.

    Args:
        data: Mapping dictionary with a 'type' of constant, output or userInput

    Returns:
        ParameterMapping instance

    Raises:
        WorkflowDefinitionError: If the mapping type is unknown or incomplete
    """
    if not isinstance(data, dict):
        raise WorkflowDefinitionError("Parameter mapping must be a mapping")
    mapping_type = data.get("type")
    if mapping_type == "constant":
        return ConstantMapping(value=str(data.get("value", "")))
    elif mapping_type == "output":
        node_id = data.get("nodeId", data.get("node_id"))
        if not node_id:
            raise WorkflowDefinitionError("Output mapping must specify 'nodeId'")
        try:
            channel = OutputChannel(data.get("outputType", data.get("output_type", "stdout")))
        except ValueError as e:
            raise WorkflowDefinitionError(f"Invalid output mapping: {e}")
        return OutputMapping(node_id=node_id, output_type=channel)
    elif mapping_type in ("userInput", "user_input"):
        return UserInputMapping()
    else:
        raise WorkflowDefinitionError(
            f"Unknown parameter mapping type '{mapping_type}'. "
            f"Must be one of: constant, output, userInput"
        )


def _list_field(data: Dict[str, Any], key: str) -> List[Any]:
    """Return a list field, treating a missing or null value as empty."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise WorkflowDefinitionError(f"'{key}' must be a list")
    return value


def _mapping_field(data: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """Return the first present mapping field, treating a missing or null value as empty."""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, dict):
            raise WorkflowDefinitionError(f"'{key}' must be a mapping")
        return value
    return {}


@dataclass(frozen=True)
class Position:
    """Canvas position of a node; irrelevant to execution."""

    x: float = 0.0
    y: float = 0.0


@dataclass
class WorkflowNode:
    """One step of a workflow."""

    script_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    position: Position = field(default_factory=Position)
    parameter_mappings: Dict[str, ParameterMapping] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowNode":
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise WorkflowDefinitionError("Workflow node must be a mapping")

        script_id = data.get("scriptId", data.get("script_id"))
        if not data.get("id") or not script_id:
            raise WorkflowDefinitionError("Workflow node must have 'id' and 'scriptId'")

        position = _mapping_field(data, "position")
        mappings = _mapping_field(data, "parameterMappings", "parameter_mappings")
        return cls(
            id=data["id"],
            script_id=script_id,
            position=Position(x=position.get("x", 0.0), y=position.get("y", 0.0)),
            parameter_mappings={
                name: mapping_from_dict(mapping) for name, mapping in mappings.items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "scriptId": self.script_id,
            "position": {"x": self.position.x, "y": self.position.y},
            "parameterMappings": {
                name: mapping.to_dict() for name, mapping in self.parameter_mappings.items()
            },
        }


@dataclass
class WorkflowConnection:
    """Directed dependency from one node to another."""

    from_node_id: str
    to_node_id: str
    output_type: OutputChannel = OutputChannel.STDOUT
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowConnection":
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise WorkflowDefinitionError("Connection must be a mapping")

        from_node_id = data.get("fromNodeId", data.get("from_node_id"))
        to_node_id = data.get("toNodeId", data.get("to_node_id"))
        if not from_node_id or not to_node_id:
            raise WorkflowDefinitionError("Connection must have 'fromNodeId' and 'toNodeId'")

        try:
            output_type = OutputChannel(data.get("outputType", data.get("output_type", "stdout")))
        except ValueError as e:
            raise WorkflowDefinitionError(f"Invalid connection: {e}")

        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            from_node_id=from_node_id,
            to_node_id=to_node_id,
            output_type=output_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "fromNodeId": self.from_node_id,
            "toNodeId": self.to_node_id,
            "outputType": self.output_type.value,
        }


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            raise WorkflowDefinitionError(f"Invalid timestamp: {value}")
    return datetime.now()


@dataclass
class Workflow:
    """
    Workflow definition.

    A set of nodes running scripts, the connections that order them, and
    descriptive metadata. The engine treats it as read-only during a run.
    """

    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    description: str = ""
    icon: str = "flowchart.fill"
    nodes: List[WorkflowNode] = field(default_factory=list)
    connections: List[WorkflowConnection] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    modified_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workflow":
        """
        Create from dictionary.

        Args:
            data: Workflow dictionary

        Returns:
            Workflow instance

        Raises:
            WorkflowDefinitionError: If the dictionary is malformed
        """
        if not isinstance(data, dict):
            raise WorkflowDefinitionError("Workflow definition must be a mapping")

        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            name=data.get("name", "unnamed"),
            description=data.get("description", ""),
            icon=data.get("icon", "flowchart.fill"),
            nodes=[WorkflowNode.from_dict(n) for n in _list_field(data, "nodes")],
            connections=[
                WorkflowConnection.from_dict(c) for c in _list_field(data, "connections")
            ],
            created_at=_parse_timestamp(data.get("createdAt", data.get("created_at"))),
            modified_at=_parse_timestamp(data.get("modifiedAt", data.get("modified_at"))),
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "Workflow":
        """
        Parse workflow from a YAML (or JSON) string.

        The definition may be wrapped in a top-level 'workflow' key.

        Raises:
            WorkflowDefinitionError: If the document is invalid
        """
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise WorkflowDefinitionError(f"Invalid YAML: {e}")

        if not data:
            raise WorkflowDefinitionError("Workflow document is empty")
        if isinstance(data, dict) and "workflow" in data:
            data = data["workflow"]
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, file_path: str) -> "Workflow":
        """
        Load workflow from a YAML or JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            WorkflowDefinitionError: If the file content is invalid
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Workflow file not found: {file_path}")

        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        if path.suffix == ".json":
            try:
                return cls.from_dict(json.loads(content))
            except json.JSONDecodeError as e:
                raise WorkflowDefinitionError(f"Invalid JSON: {e}")
        return cls.from_yaml(content)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "nodes": [node.to_dict() for node in self.nodes],
            "connections": [c.to_dict() for c in self.connections],
            "createdAt": self.created_at.isoformat(),
            "modifiedAt": self.modified_at.isoformat(),
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump({"workflow": self.to_dict()}, sort_keys=False)

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """
        Get node by ID.

        Args:
            node_id: Node identifier

        Returns:
            WorkflowNode or None if not found
        """
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    @property
    def edges(self) -> List[tuple]:
        """Dependency edges as (from_node_id, to_node_id) pairs."""
        return [(c.from_node_id, c.to_node_id) for c in self.connections]

    def copy_with(self, **changes) -> "Workflow":
        return replace(self, **changes)

    def validate(self, script_ids: Optional[List[str]] = None) -> List[str]:
        """
        Check the workflow for problems that would affect a run.

        Cycles are not detected here; the scheduler reports them.

        Args:
            script_ids: Known script ids; when given, node references are checked too

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.name:
            errors.append("Workflow must have a name")

        node_ids = self.node_ids
        if len(set(node_ids)) != len(node_ids):
            errors.append("Duplicate node IDs found")
        known = set(node_ids)

        for connection in self.connections:
            for endpoint in (connection.from_node_id, connection.to_node_id):
                if endpoint not in known:
                    errors.append(
                        f"Connection '{connection.id}' references unknown node '{endpoint}'"
                    )

        for node in self.nodes:
            if script_ids is not None and node.script_id not in script_ids:
                errors.append(f"Node '{node.id}' references unknown script '{node.script_id}'")
            for name, mapping in node.parameter_mappings.items():
                if isinstance(mapping, OutputMapping) and mapping.node_id not in known:
                    errors.append(
                        f"Parameter '{name}' of node '{node.id}' reads output of unknown node '{mapping.node_id}'"
                    )

        return errors

    def __repr__(self) -> str:
        return (
            f"Workflow(name='{self.name}', "
            f"nodes={len(self.nodes)}, connections={len(self.connections)})"
        )

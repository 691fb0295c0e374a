"""
Script Descriptors

Immutable descriptions of runnable scripts and their declared parameters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RuntimeKind(str, Enum):
    """How a script is launched."""

    COMPILED = "compiled"
    INTERPRETED = "interpreted"
    SHELL = "shell"

    @classmethod
    def parse(cls, value: str) -> "RuntimeKind":
        """Parse a runtime kind, accepting the language names used by script configs."""
        normalized = (value or "").strip().lower()
        alias = RUNTIME_ALIASES.get(normalized, normalized)
        try:
            return cls(alias)
        except ValueError:
            raise ValueError(
                f"Unknown script type '{value}'. "
                f"Must be one of: {', '.join(k.value for k in cls)}"
            )


RUNTIME_ALIASES = {
    "java": "compiled",
    "python": "interpreted",
    "python3": "interpreted",
    "bash": "shell",
    "sh": "shell",
}


class ParameterType(str, Enum):
    """Semantic type of a script parameter."""

    TEXT = "text"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DIRECTORY = "directory"
    FILE = "file"
    CHOICE = "choice"

    @property
    def is_path(self) -> bool:
        return self in (ParameterType.DIRECTORY, ParameterType.FILE)


@dataclass(frozen=True)
class Parameter:
    """Declared parameter of a script."""

    name: str
    label: str = ""
    type: ParameterType = ParameterType.TEXT
    required: bool = False
    default_value: Optional[str] = None
    description: str = ""
    options: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Parameter":
        """Create from dictionary."""
        if not isinstance(data, dict) or not data.get("name"):
            raise ValueError("Parameter must have a name")

        options = data.get("options")
        default = data.get("defaultValue", data.get("default_value"))
        return cls(
            name=data["name"],
            label=data.get("label", data["name"]),
            type=ParameterType(data.get("type", "text")),
            required=data.get("required", False),
            default_value=None if default is None else str(default),
            description=data.get("description", ""),
            options=tuple(options) if options is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "name": self.name,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "description": self.description,
        }
        if self.default_value is not None:
            result["defaultValue"] = self.default_value
        if self.options is not None:
            result["options"] = list(self.options)
        return result


@dataclass(frozen=True)
class Script:
    """
    Descriptor of a runnable script.

    Owned by the script registry; workflow nodes refer to it by id.
    """

    id: str
    name: str
    type: RuntimeKind
    script_path: str
    description: str = ""
    class_name: str = ""
    icon: str = ""
    parameters: Tuple[Parameter, ...] = field(default_factory=tuple)
    warnings: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Script":
        """
        Create from dictionary.

        Accepts both camelCase keys (as written by script config files) and
        snake_case keys.

        Args:
            data: Script definition dictionary

        Returns:
            Script instance

        Raises:
            ValueError: If required fields are missing or the type is unknown
        """
        if not isinstance(data, dict):
            raise ValueError("Script definition must be a mapping")
        for key in ("id", "name", "type"):
            if not data.get(key):
                raise ValueError(f"Script definition is missing '{key}'")

        parameters = data.get("parameters") or []
        if not isinstance(parameters, list):
            raise ValueError(f"Parameters of script '{data['id']}' must be a list")
        warnings = data.get("warnings")
        return cls(
            id=data["id"],
            name=data["name"],
            type=RuntimeKind.parse(data["type"]),
            script_path=data.get("scriptPath", data.get("script_path", "")),
            description=data.get("description", ""),
            class_name=data.get("className", data.get("class_name", "")),
            icon=data.get("icon", ""),
            parameters=tuple(Parameter.from_dict(p) for p in parameters),
            warnings=tuple(warnings) if warnings is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "scriptPath": self.script_path,
            "className": self.class_name,
            "icon": self.icon,
            "parameters": [p.to_dict() for p in self.parameters],
        }
        if self.warnings is not None:
            result["warnings"] = list(self.warnings)
        return result

    def get_parameter(self, name: str) -> Optional[Parameter]:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    def __repr__(self) -> str:
        return f"Script(id='{self.id}', name='{self.name}', type='{self.type.value}')"

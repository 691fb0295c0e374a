"""
Script Tools

Script descriptors, the script registry and the runtimes that build and
launch compiled, interpreted and shell scripts.
"""

from script_tools.models import Parameter, ParameterType, RuntimeKind, Script
from script_tools.registry import ScriptRegistry, load_scripts_config
from script_tools.types import ExecutionResult, ScriptRunSnapshot

__all__ = [
    "Parameter",
    "ParameterType",
    "RuntimeKind",
    "Script",
    "ScriptRegistry",
    "load_scripts_config",
    "ExecutionResult",
    "ScriptRunSnapshot",
]

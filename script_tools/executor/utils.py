import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from script_tools.models import Parameter, Script

OUTPUT_ENCODING = "utf-8"


def decode_output(data: Optional[bytes]) -> str:
    """Decode captured process output, replacing undecodable bytes.

    Args:
        data: Raw bytes read from a pipe

    Returns:
        Decoded text, never raises on invalid input
    """
    if not data:
        return ""
    return data.decode(OUTPUT_ENCODING, errors="replace")


def format_argument(parameter: Parameter, value: str) -> str:
    """Format a parameter value for use as a process argument.

    Directory and file values containing a space are wrapped in double quotes,
    everything else is passed through unchanged.

    Args:
        parameter: Declared parameter the value belongs to
        value: Resolved value

    Returns:
        Argument string
    """
    if parameter.type.is_path and " " in value:
        return f'"{value}"'
    return value


def build_arguments(script: Script, values: Mapping[str, str]) -> List[str]:
    """Build the argument list for a direct script run.

    Every declared parameter contributes one argument in declared order,
    using the supplied value or the declared default.

    Args:
        script: Script to run
        values: Parameter values keyed by parameter name

    Returns:
        Formatted argument list
    """
    arguments = []
    for parameter in script.parameters:
        value = values.get(parameter.name)
        if value is None:
            value = parameter.default_value or ""
        arguments.append(format_argument(parameter, str(value)))
    return arguments


def parse_parameter_assignments(assignments: List[str]) -> Dict[str, str]:
    """Parse name=value strings into a dictionary.

    Raises:
        ValueError: If an assignment has no '='
    """
    values = {}
    for assignment in assignments:
        if "=" not in assignment:
            raise ValueError(f"Expected name=value, got '{assignment}'")
        name, value = assignment.split("=", 1)
        values[name.strip()] = value
    return values


def resolve_source_path(script_path: str, project_root: str) -> str:
    """Resolve a script source path against the project root."""
    path = Path(script_path).expanduser()
    if not path.is_absolute():
        path = Path(project_root) / path
    return str(path)




def ensure_directory_exists(directory: str) -> None:
    """Ensure a directory exists, creating it if necessary.

    Args:
        directory: Path to the directory
    """
    os.makedirs(directory, exist_ok=True)

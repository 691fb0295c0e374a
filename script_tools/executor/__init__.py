from script_tools.executor.executor import ScriptExecutor
from script_tools.executor.run_controller import ScriptRunController
from script_tools.executor.runtimes import (
    CompiledRuntime,
    InterpretedRuntime,
    ShellRuntime,
    default_runtimes,
)
from script_tools.executor.utils import (
    build_arguments,
    decode_output,
    format_argument,
    parse_parameter_assignments,
    resolve_source_path,
)

__all__ = [
    "ScriptExecutor",
    "ScriptRunController",
    "CompiledRuntime",
    "InterpretedRuntime",
    "ShellRuntime",
    "default_runtimes",
    "build_arguments",
    "decode_output",
    "format_argument",
    "parse_parameter_assignments",
    "resolve_source_path",
]

"""
Script Runtimes

One implementation per runtime kind. They only differ in how the command
line is built and whether a build step is needed; running the process and
capturing its output is shared by the executor.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from config import env_manager
from script_tools.interfaces import ScriptRuntimeInterface
from script_tools.models import RuntimeKind, Script
from script_tools.executor.utils import ensure_directory_exists, resolve_source_path

logger = logging.getLogger(__name__)

COMPILED_ARTIFACT_SUFFIX = ".class"


class CompiledRuntime(ScriptRuntimeInterface):
    """
    Runtime for compiled scripts.

    The script's source is compiled into the build output directory the first
    time it is needed; later runs reuse the artifact.
    """

    def __init__(
        self,
        compiler_binary: Optional[str] = None,
        runtime_binary: Optional[str] = None,
        build_output_dir: Optional[str] = None,
    ):
        """
        Initialize the compiled runtime.

        Args:
            compiler_binary: Compiler used for the build step (default: compiler_binary setting)
            runtime_binary: Binary that runs compiled classes (default: compiled_runtime_binary setting)
            build_output_dir: Fixed build output directory; when omitted it is
                derived from the project root on each run
        """
        self.compiler_binary = compiler_binary or env_manager.get_setting("compiler_binary")
        self.runtime_binary = runtime_binary or env_manager.get_setting("compiled_runtime_binary")
        self.build_output_dir = build_output_dir

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.COMPILED

    def get_build_output_dir(self, project_root: str) -> str:
        if self.build_output_dir:
            return self.build_output_dir
        return env_manager.get_build_output_dir(project_root)

    def artifact_path(self, script: Script, project_root: str) -> Path:
        """Path of the compiled artifact for the script's entry class."""
        relative = script.class_name.replace(".", "/") + COMPILED_ARTIFACT_SUFFIX
        return Path(self.get_build_output_dir(project_root)) / relative

    def prepare_build(self, script: Script, project_root: str) -> Optional[List[str]]:
        if not script.class_name:
            raise ValueError(f"Compiled script '{script.id}' has no class name")

        if self.artifact_path(script, project_root).exists():
            return None

        output_dir = self.get_build_output_dir(project_root)
        ensure_directory_exists(output_dir)
        logger.info(f"No compiled artifact for {script.class_name}, building into {output_dir}")
        return [
            self.compiler_binary,
            "-d",
            output_dir,
            resolve_source_path(script.script_path, project_root),
        ]

    def launch_command(
        self, script: Script, arguments: List[str], project_root: str
    ) -> List[str]:
        return [
            self.runtime_binary,
            "-cp",
            self.get_build_output_dir(project_root),
            script.class_name,
            *arguments,
        ]


class InterpretedRuntime(ScriptRuntimeInterface):
    """Runtime for interpreted scripts, launched directly by the interpreter."""

    def __init__(self, interpreter_binary: Optional[str] = None):
        self.interpreter_binary = interpreter_binary or env_manager.get_setting("interpreter_binary")

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.INTERPRETED

    def launch_command(
        self, script: Script, arguments: List[str], project_root: str
    ) -> List[str]:
        return [
            self.interpreter_binary,
            resolve_source_path(script.script_path, project_root),
            *arguments,
        ]


class ShellRuntime(ScriptRuntimeInterface):
    """Runtime for shell scripts."""

    def __init__(self, shell_binary: Optional[str] = None):
        self.shell_binary = shell_binary or env_manager.get_setting("shell_binary")

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.SHELL

    def launch_command(
        self, script: Script, arguments: List[str], project_root: str
    ) -> List[str]:
        return [
            self.shell_binary,
            resolve_source_path(script.script_path, project_root),
            *arguments,
        ]


def default_runtimes() -> Dict[RuntimeKind, ScriptRuntimeInterface]:
    """Create one runtime per kind from the current settings."""
    toolchain = env_manager.get_toolchain()
    runtimes = [
        CompiledRuntime(toolchain.compiler_binary, toolchain.compiled_runtime_binary),
        InterpretedRuntime(toolchain.interpreter_binary),
        ShellRuntime(toolchain.shell_binary),
    ]
    return {runtime.kind: runtime for runtime in runtimes}

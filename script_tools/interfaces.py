"""Interfaces for script runtimes and executors.

This module defines the contracts each runtime kind implements and the
contract the workflow engine relies on to run a script.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from script_tools.models import RuntimeKind, Script
from script_tools.types import ExecutionResult

# Receives (stream_name, text) for every decoded chunk, stream_name is "stdout" or "stderr"
OutputCallback = Callable[[str, str], None]


class ScriptRuntimeInterface(ABC):
    """Builds the process command lines for one runtime kind."""

    @property
    @abstractmethod
    def kind(self) -> RuntimeKind:
        """Runtime kind handled by this implementation."""
        pass

    def prepare_build(self, script: Script, project_root: str) -> Optional[List[str]]:
        """Return the build command needed before the script can run.

        Args:
            script: Script to run
            project_root: Root that relative paths are resolved against

        Returns:
            Command to run synchronously before launching, or None when the
            script can be launched as is
        """
        return None

    @abstractmethod
    def launch_command(
        self, script: Script, arguments: List[str], project_root: str
    ) -> List[str]:
        """Return the command that runs the script with its arguments.

        Args:
            script: Script to run
            arguments: Concrete argument values in declared parameter order
            project_root: Root that relative paths are resolved against

        Returns:
            Command as a list of arguments
        """
        pass


class ScriptExecutorInterface(ABC):
    """Interface for running scripts of any runtime kind."""

    @abstractmethod
    def execute(
        self,
        script: Script,
        arguments: List[str],
        project_root: Optional[str] = None,
    ) -> ExecutionResult:
        """Run a script and block until it exits.

        Args:
            script: Script to run
            arguments: Concrete argument values
            project_root: Optional project root, defaults to the configured one

        Returns:
            Final captured result
        """
        pass

    @abstractmethod
    async def execute_streaming(
        self,
        script: Script,
        arguments: List[str],
        project_root: Optional[str] = None,
        output_callback: Optional[OutputCallback] = None,
    ) -> ExecutionResult:
        """Run a script, pushing output to a callback while it is alive.

        Args:
            script: Script to run
            arguments: Concrete argument values
            project_root: Optional project root, defaults to the configured one
            output_callback: Optional callback receiving decoded output chunks

        Returns:
            Final captured result, identical to what execute() returns
        """
        pass

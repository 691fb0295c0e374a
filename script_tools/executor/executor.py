import asyncio
import codecs
import json
import logging
import subprocess
import time
import traceback
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Tuple

import psutil

from config import env_manager
from script_tools.interfaces import (
    OutputCallback,
    ScriptExecutorInterface,
    ScriptRuntimeInterface,
)
from script_tools.models import RuntimeKind, Script
from script_tools.types import ExecutionResult
from script_tools.executor.runtimes import default_runtimes
from script_tools.executor.utils import OUTPUT_ENCODING, decode_output

# Size of each pipe read in streaming mode
READ_CHUNK_SIZE = 4096

# Create logger with the module name
logger = logging.getLogger(__name__)


def _log_with_context(log_level: int, msg: str, context: Dict[str, Any] = None) -> None:
    """Helper function for structured logging with context

    Args:
        log_level: The logging level to use
        msg: The message to log
        context: Optional dictionary of contextual information
    """
    if context is None:
        context = {}

    # Add timestamp in ISO format using timezone-aware UTC
    context["timestamp"] = datetime.now(UTC).isoformat()

    # Format the log message with context
    structured_msg = f"{msg} | Context: {json.dumps(context, default=str)}"
    logger.log(log_level, structured_msg)


def _kill_process_tree(pid: int) -> None:
    """Kill a process and every process it spawned

    Args:
        pid: Process ID at the root of the tree
    """
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return

    for proc in children + [parent]:
        try:
            proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            _log_with_context(
                logging.DEBUG,
                "Could not kill process",
                {"pid": proc.pid, "error": str(e)},
            )


class ScriptExecutor(ScriptExecutorInterface):
    """Runs scripts of every runtime kind and captures their output.

    Two modes are offered. execute() blocks until the process exits and is
    what workflow steps use; execute_streaming() pushes decoded output to a
    callback while the process runs. Both decode the complete captured bytes
    the same way, so their final results are identical.

    Example:
        executor = ScriptExecutor()
        result = executor.execute(script, ["/tmp/in", "/tmp/out"])

        async def run():
            return await executor.execute_streaming(
                script, [], output_callback=lambda stream, text: print(text, end="")
            )
    """

    def __init__(
        self,
        runtimes: Optional[Dict[RuntimeKind, ScriptRuntimeInterface]] = None,
        timeout: Optional[float] = None,
        project_root: Optional[str] = None,
    ):
        """
        Initialize the executor.

        Args:
            runtimes: Runtime implementations keyed by kind (default: one per kind from settings)
            timeout: Wall clock limit per process in seconds (default: execution_timeout
                setting, 0 means no limit)
            project_root: Default project root (default: detected from settings)
        """
        # Load settings from the .env file and OS environment
        env_manager.load()

        self.runtimes = runtimes if runtimes is not None else default_runtimes()
        if timeout is None:
            timeout = env_manager.get_setting("execution_timeout", 0.0)
        self.timeout = timeout or None
        self.project_root = project_root

        _log_with_context(
            logging.DEBUG,
            "Initialized ScriptExecutor",
            {
                "runtimes": [kind.value for kind in self.runtimes],
                "timeout": self.timeout,
            },
        )

    def _project_root(self, project_root: Optional[str]) -> str:
        return project_root or self.project_root or env_manager.get_project_root()

    def _prepare(
        self, script: Script, arguments: List[str], project_root: str
    ) -> Tuple[Optional[List[str]], List[str]]:
        """Return the (build_command, launch_command) pair for a script.

        Raises:
            ValueError: If no runtime handles the script kind or the script is incomplete
            OSError: If the build output directory cannot be created
        """
        runtime = self.runtimes.get(script.type)
        if runtime is None:
            raise ValueError(f"Unsupported script type: {script.type.value}")

        build_command = runtime.prepare_build(script, project_root)
        launch_command = runtime.launch_command(script, list(arguments), project_root)
        return build_command, launch_command

    @staticmethod
    def _build_failure(build: ExecutionResult, class_name: str) -> ExecutionResult:
        return ExecutionResult(
            success=False,
            return_code=build.return_code,
            stdout=build.stdout,
            stderr=build.stderr + f"Compilation failed for {class_name}\n",
            command=build.command,
            duration=build.duration,
        )

    def execute(
        self,
        script: Script,
        arguments: List[str],
        project_root: Optional[str] = None,
    ) -> ExecutionResult:
        """Run a script synchronously, building it first when required.

        Args:
            script: Script to run
            arguments: Concrete argument values
            project_root: Optional project root

        Returns:
            ExecutionResult; launch failures have return_code -1
        """
        root = self._project_root(project_root)
        try:
            build_command, launch_command = self._prepare(script, arguments, root)
        except (ValueError, OSError) as e:
            _log_with_context(
                logging.ERROR,
                "Could not prepare script",
                {"script_id": script.id, "error": str(e)},
            )
            return ExecutionResult.launch_failure([], f"Failed to execute: {e}")

        if build_command:
            build = self._run_blocking(build_command)
            if not build.success:
                return self._build_failure(build, script.class_name)

        return self._run_blocking(launch_command)

    def _run_blocking(self, command: List[str]) -> ExecutionResult:
        """Run a command to completion, reading both pipes until they close."""
        start_time = time.time()
        _log_with_context(
            logging.INFO,
            "Executing script synchronously",
            {"command": command, "timeout": self.timeout},
        )

        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            _log_with_context(
                logging.ERROR,
                "Failed to launch script",
                {"command": command, "error": str(e)},
            )
            return ExecutionResult.launch_failure(
                command, f"Failed to execute: {e}", time.time() - start_time
            )

        try:
            stdout_data, stderr_data = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            _log_with_context(
                logging.WARNING,
                f"Script timed out after {self.timeout} seconds",
                {"command": command, "pid": process.pid},
            )
            _kill_process_tree(process.pid)
            stdout_data, stderr_data = process.communicate()
            return ExecutionResult(
                success=False,
                return_code=-1,
                stdout=decode_output(stdout_data),
                stderr=f"Process timed out after {self.timeout} seconds\n"
                + decode_output(stderr_data),
                command=command,
                duration=time.time() - start_time,
            )

        result = ExecutionResult(
            success=process.returncode == 0,
            return_code=process.returncode,
            stdout=decode_output(stdout_data),
            stderr=decode_output(stderr_data),
            command=command,
            duration=time.time() - start_time,
        )
        _log_with_context(
            logging.INFO,
            "Script completed synchronously",
            {
                "command": command,
                "return_code": result.return_code,
                "stdout_length": len(result.stdout),
                "stderr_length": len(result.stderr),
            },
        )
        return result

    async def execute_streaming(
        self,
        script: Script,
        arguments: List[str],
        project_root: Optional[str] = None,
        output_callback: Optional[OutputCallback] = None,
    ) -> ExecutionResult:
        """Run a script, pushing decoded output to a callback as it arrives.

        Build output of compiled scripts is streamed too but, as in execute(),
        only becomes part of the result when the build fails.

        Args:
            script: Script to run
            arguments: Concrete argument values
            project_root: Optional project root
            output_callback: Optional callback receiving (stream_name, text)

        Returns:
            ExecutionResult identical to what execute() returns
        """
        root = self._project_root(project_root)
        try:
            build_command, launch_command = self._prepare(script, arguments, root)
        except (ValueError, OSError) as e:
            _log_with_context(
                logging.ERROR,
                "Could not prepare script",
                {"script_id": script.id, "error": str(e)},
            )
            return ExecutionResult.launch_failure([], f"Failed to execute: {e}")

        if build_command:
            build = await self._run_streaming(build_command, output_callback)
            if not build.success:
                return self._build_failure(build, script.class_name)

        return await self._run_streaming(launch_command, output_callback)

    async def _run_streaming(
        self, command: List[str], output_callback: Optional[OutputCallback]
    ) -> ExecutionResult:
        start_time = time.time()
        _log_with_context(
            logging.INFO,
            "Starting streaming script",
            {"command": command, "timeout": self.timeout},
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            _log_with_context(
                logging.ERROR,
                "Failed to launch script",
                {"command": command, "error": str(e)},
            )
            return ExecutionResult.launch_failure(
                command, f"Failed to execute: {e}", time.time() - start_time
            )

        stdout_buffer = bytearray()
        stderr_buffer = bytearray()

        async def pump(stream: asyncio.StreamReader, name: str, buffer: bytearray):
            decoder = codecs.getincrementaldecoder(OUTPUT_ENCODING)(errors="replace")
            while True:
                chunk = await stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                buffer.extend(chunk)
                text = decoder.decode(chunk)
                if text and output_callback:
                    self._notify(output_callback, name, text)
            tail = decoder.decode(b"", final=True)
            if tail and output_callback:
                self._notify(output_callback, name, tail)

        timed_out = False
        try:
            await asyncio.wait_for(
                asyncio.gather(
                    pump(process.stdout, "stdout", stdout_buffer),
                    pump(process.stderr, "stderr", stderr_buffer),
                    process.wait(),
                ),
                self.timeout,
            )
        except asyncio.TimeoutError:
            timed_out = True
            _log_with_context(
                logging.WARNING,
                f"Script timed out after {self.timeout} seconds",
                {"command": command, "pid": process.pid},
            )
            _kill_process_tree(process.pid)
            await process.wait()
            # Collect what the cancelled pumps left in the pipes
            stdout_buffer.extend(await process.stdout.read())
            stderr_buffer.extend(await process.stderr.read())

        stdout = decode_output(bytes(stdout_buffer))
        stderr = decode_output(bytes(stderr_buffer))
        if timed_out:
            return ExecutionResult(
                success=False,
                return_code=-1,
                stdout=stdout,
                stderr=f"Process timed out after {self.timeout} seconds\n" + stderr,
                command=command,
                duration=time.time() - start_time,
            )

        result = ExecutionResult(
            success=process.returncode == 0,
            return_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
            command=command,
            duration=time.time() - start_time,
        )
        _log_with_context(
            logging.INFO,
            "Streaming script completed",
            {
                "command": command,
                "pid": process.pid,
                "return_code": result.return_code,
                "stdout_length": len(stdout),
                "stderr_length": len(stderr),
            },
        )
        return result

    @staticmethod
    def _notify(output_callback: OutputCallback, stream_name: str, text: str):
        try:
            output_callback(stream_name, text)
        except Exception as e:
            _log_with_context(
                logging.ERROR,
                "Error in output callback",
                {"stream": stream_name, "error": str(e), "traceback": traceback.format_exc()},
            )

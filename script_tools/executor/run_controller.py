"""
Single Script Runs

Runs one script outside of any workflow on its own worker thread, streaming
its output into an observable snapshot.
"""

import asyncio
import logging
import threading
from typing import Callable, List, Mapping, Optional

from script_tools.executor.executor import ScriptExecutor
from script_tools.executor.utils import build_arguments
from script_tools.models import Script
from script_tools.types import ExecutionResult, ScriptRunSnapshot

logger = logging.getLogger(__name__)

SnapshotObserver = Callable[[ScriptRunSnapshot], None]


class ScriptRunController:
    """
    Drives a single streaming script run and publishes its progress.

    Observers receive a new immutable ScriptRunSnapshot after every change;
    snapshot() can be polled from any thread.
    """

    def __init__(
        self,
        executor: Optional[ScriptExecutor] = None,
        project_root: Optional[str] = None,
    ):
        self.executor = executor or ScriptExecutor()
        self.project_root = project_root
        self._lock = threading.Lock()
        self._snapshot = ScriptRunSnapshot()
        self._observers: List[SnapshotObserver] = []
        self._worker: Optional[threading.Thread] = None
        self._result: Optional[ExecutionResult] = None

    def add_observer(self, observer: SnapshotObserver):
        with self._lock:
            self._observers.append(observer)

    def remove_observer(self, observer: SnapshotObserver):
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def snapshot(self) -> ScriptRunSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def is_running(self) -> bool:
        return self.snapshot().is_running

    @property
    def result(self) -> Optional[ExecutionResult]:
        """Final result of the last finished run."""
        with self._lock:
            return self._result

    def _publish(self, update: Callable[[ScriptRunSnapshot], dict]):
        """Replace the snapshot with a copy carrying update(current) and notify observers."""
        with self._lock:
            self._snapshot = self._snapshot.model_copy(update=update(self._snapshot))
            snapshot = self._snapshot
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(snapshot)
            except Exception as e:
                logger.error(f"Error notifying script run observer: {e}", exc_info=True)

    def _append(self, stream_name: str, text: str):
        if stream_name == "stderr":
            self._publish(lambda current: {"error": current.error + text})
        else:
            self._publish(lambda current: {"output": current.output + text})

    def start(self, script: Script, values: Optional[Mapping[str, str]] = None) -> threading.Thread:
        """
        Start running a script on a worker thread.

        Args:
            script: Script to run
            values: Parameter values by name; missing ones use the declared default

        Returns:
            The worker thread

        Raises:
            RuntimeError: If a run is already in progress on this controller
        """
        with self._lock:
            if self._snapshot.is_running:
                raise RuntimeError("A script run is already in progress")
            self._result = None
            self._snapshot = ScriptRunSnapshot(script_id=script.id, is_running=True)

        arguments = build_arguments(script, values or {})
        self._worker = threading.Thread(
            target=self._run,
            args=(script, arguments),
            name=f"script-run-{script.id}",
            daemon=True,
        )
        self._worker.start()
        return self._worker

    def run(self, script: Script, values: Optional[Mapping[str, str]] = None) -> ExecutionResult:
        """Run a script on the calling thread and return its result."""
        self.start(script, values).join()
        return self.result

    def wait(self, timeout: Optional[float] = None) -> ScriptRunSnapshot:
        """Wait for the current run to finish and return the latest snapshot."""
        if self._worker is not None:
            self._worker.join(timeout)
        return self.snapshot()

    def _run(self, script: Script, arguments: List[str]):
        self._append("stdout", f"Running {script.name}...\n")
        try:
            result = asyncio.run(
                self.executor.execute_streaming(
                    script,
                    arguments,
                    project_root=self.project_root,
                    output_callback=self._append,
                )
            )
        except Exception as e:
            logger.error(f"Script run '{script.id}' crashed: {e}", exc_info=True)
            result = ExecutionResult.launch_failure([], f"Failed to execute: {e}")

        if result.success:
            summary = "\n✅ Script completed successfully\n"
        else:
            summary = f"\n❌ Script failed with exit code: {result.return_code}\n"

        with self._lock:
            self._result = result

        # The final stderr also carries launch, build and timeout messages that never streamed
        self._publish(
            lambda current: {
                "output": current.output + summary,
                "error": result.stderr,
                "exit_code": result.return_code,
                "is_running": False,
            }
        )

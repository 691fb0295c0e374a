"""
Workflow Engine

Execute workflows node by node in dependency order, feeding outputs of
finished nodes into the parameters of later ones.
"""

import copy
import logging
import os
import threading
from typing import Callable, Dict, List, Optional

from config import env_manager
from script_tools.executor import ScriptExecutor
from script_tools.interfaces import ScriptExecutorInterface
from script_tools.models import Script
from script_tools.registry import ScriptRegistry

from .definition import Workflow
from .exceptions import CycleError, StaleReferenceError
from .resolver import ParameterResolver
from .scheduler import GraphScheduler
from .state import NodeOutput, RunSnapshot, RunStatus

RunObserver = Callable[[RunSnapshot], None]

BANNER_RULE = "━" * 34


class WorkflowController:
    """
    Workflow execution controller.

    Runs one workflow at a time: schedules its nodes, resolves and executes
    them strictly one after another, stops at the first failure, and
    publishes every state change as an immutable RunSnapshot.

    Example:
        controller = WorkflowController(registry)
        controller.add_observer(lambda snapshot: print(snapshot.status))
        controller.start(workflow)
        final = controller.wait()
    """

    def __init__(
        self,
        registry: ScriptRegistry,
        executor: Optional[ScriptExecutorInterface] = None,
        resolver: Optional[ParameterResolver] = None,
        scheduler: Optional[GraphScheduler] = None,
        project_root: Optional[str] = None,
        strict_references: Optional[bool] = None,
    ):
        """
        Initialize the controller.

        Args:
            registry: Script registry nodes are resolved against
            executor: Executor running each node (default: ScriptExecutor from settings)
            resolver: Parameter resolver (default: userInput resolves to defaults)
            scheduler: Graph scheduler
            project_root: Project root passed to the executor
            strict_references: Fail the run on missing nodes or scripts instead of
                skipping them (default: strict_references setting)
        """
        self.logger = logging.getLogger(__name__)
        env_manager.load()

        self.registry = registry
        self.executor = executor or ScriptExecutor()
        self.resolver = resolver or ParameterResolver()
        self.scheduler = scheduler or GraphScheduler()
        self.project_root = project_root
        if strict_references is None:
            strict_references = env_manager.get_setting("strict_references", False)
        self.strict_references = strict_references

        self._lock = threading.Lock()
        self._snapshot = RunSnapshot()
        self._observers: List[RunObserver] = []
        self._worker: Optional[threading.Thread] = None

    def add_observer(self, observer: RunObserver):
        """Register a callback receiving every new snapshot."""
        with self._lock:
            self._observers.append(observer)

    def remove_observer(self, observer: RunObserver):
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def snapshot(self) -> RunSnapshot:
        """Latest published state; safe to call from any thread."""
        with self._lock:
            return self._snapshot

    @property
    def is_running(self) -> bool:
        return self.snapshot().is_running

    def _publish(self, **changes) -> RunSnapshot:
        with self._lock:
            self._snapshot = self._snapshot.model_copy(update=changes)
            snapshot = self._snapshot
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(snapshot)
            except Exception as e:
                self.logger.error(f"Error notifying run observer: {e}", exc_info=True)
        return snapshot

    def _begin(self, workflow: Workflow):
        with self._lock:
            if self._snapshot.is_running:
                raise RuntimeError("A workflow run is already in progress")

            # The run works on snapshots; later edits to the workflow or registry don't affect it
            scripts = {script.id: script for script in self.registry.list_scripts()}
            workflow = copy.deepcopy(workflow)

            self._snapshot = RunSnapshot(workflow_id=workflow.id, status=RunStatus.RUNNING)
        return workflow, scripts

    def start(self, workflow: Workflow) -> threading.Thread:
        """
        Start a run on a dedicated worker thread and return immediately.

        Raises:
            RuntimeError: If a run is already in progress
        """
        workflow, scripts = self._begin(workflow)
        self._worker = threading.Thread(
            target=self._execute,
            args=(workflow, scripts),
            name=f"workflow-run-{workflow.id}",
            daemon=True,
        )
        self._worker.start()
        return self._worker

    def wait(self, timeout: Optional[float] = None) -> RunSnapshot:
        """Wait for the worker started by start() and return the latest snapshot."""
        if self._worker is not None:
            self._worker.join(timeout)
        return self.snapshot()

    def run(self, workflow: Workflow) -> RunSnapshot:
        """
        Execute a workflow on the calling thread.

        Returns:
            Final snapshot; failures are reported through its status and error

        Raises:
            RuntimeError: If a run is already in progress
        """
        workflow, scripts = self._begin(workflow)
        return self._execute(workflow, scripts)

    def _execute(self, workflow: Workflow, scripts: Dict[str, Script]) -> RunSnapshot:
        log = f"🚀 Starting workflow: {workflow.name} ({len(workflow.nodes)} nodes)\n"
        self._publish(overall_output=log)
        self.logger.info(f"Starting workflow '{workflow.name}' ({len(workflow.nodes)} nodes)")

        for problem in workflow.validate():
            self.logger.warning(f"Workflow '{workflow.name}': {problem}")

        try:
            order = self.scheduler.order(workflow)
        except CycleError as e:
            self.logger.error(f"Workflow '{workflow.name}' rejected: {e}")
            log += f"❌ {e.message}\n"
            return self._publish(
                status=RunStatus.CYCLE_REJECTED,
                error=e.message,
                overall_output=log,
            )

        log += f"Execution order: {len(order)} nodes\n\n"
        self._publish(overall_output=log)

        outputs: Dict[str, NodeOutput] = {}
        working_directory = os.getcwd()

        try:
            for node_id in order:
                node = workflow.get_node(node_id)
                script = scripts.get(node.script_id) if node else None
                if node is None or script is None:
                    if self.strict_references:
                        raise StaleReferenceError(node_id, node.script_id if node else None)
                    self.logger.warning(
                        f"Skipping node '{node_id}': "
                        + ("not in workflow" if node is None else f"unknown script '{node.script_id}'")
                    )
                    continue

                log += f"{BANNER_RULE}\n▶️  Running: {script.name}\n{BANNER_RULE}\n\n"
                self._publish(current_node_id=node_id, overall_output=log)

                arguments = self.resolver.resolve(node, script, outputs)
                self.logger.info(f"Executing node '{node_id}' ({script.name}) with {len(arguments)} arguments")
                result = self.executor.execute(script, arguments, self.project_root)

                outputs[node_id] = NodeOutput(
                    stdout=result.stdout,
                    stderr=result.stderr,
                    exit_code=result.return_code,
                    working_directory=working_directory,
                )

                if result.stdout:
                    log += result.stdout if result.stdout.endswith("\n") else result.stdout + "\n"
                if result.stderr:
                    log += "⚠️ Error output:\n" + result.stderr
                    if not result.stderr.endswith("\n"):
                        log += "\n"

                if result.return_code != 0:
                    log += f"\n❌ Step '{script.name}' failed (exit code: {result.return_code})\n"
                    log += "⏸️  Workflow stopped\n"
                    self.logger.warning(
                        f"Workflow '{workflow.name}' stopped: node '{node_id}' exited with {result.return_code}"
                    )
                    return self._publish(
                        status=RunStatus.FAILED,
                        node_outputs=dict(outputs),
                        overall_output=log,
                        error=f"Step '{script.name}' failed",
                    )

                log += "✅ Step completed\n\n"
                self._publish(node_outputs=dict(outputs), overall_output=log)

        except StaleReferenceError as e:
            self.logger.error(f"Workflow '{workflow.name}' failed: {e}")
            log += f"\n❌ {e.message}\n"
            return self._publish(
                status=RunStatus.FAILED,
                node_outputs=dict(outputs),
                overall_output=log,
                error=e.message,
            )
        except Exception as e:
            self.logger.error(f"Workflow execution failed: {e}", exc_info=True)
            log += f"\n❌ Workflow execution failed: {e}\n"
            return self._publish(
                status=RunStatus.FAILED,
                node_outputs=dict(outputs),
                overall_output=log,
                error=str(e),
            )

        log += f"{BANNER_RULE}\n🎉 Workflow completed!\n{BANNER_RULE}\n"
        self.logger.info(f"Workflow '{workflow.name}' completed")
        return self._publish(
            status=RunStatus.SUCCEEDED,
            current_node_id=None,
            overall_output=log,
        )

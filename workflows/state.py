"""
Run State

Observable state of a workflow run: per-node outputs, the cumulative log and
the run's terminal status.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .definition import OutputChannel


class RunStatus(str, Enum):
    """Status of a workflow run."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CYCLE_REJECTED = "cycle_rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCEEDED, RunStatus.FAILED, RunStatus.CYCLE_REJECTED)


class NodeOutput(BaseModel):
    """Captured result of one finished node."""

    model_config = ConfigDict(frozen=True)

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    working_directory: str = ""

    def channel_value(self, channel: OutputChannel) -> str:
        """
        Value exposed to downstream parameter mappings.

        stdout and stderr are stripped of surrounding whitespace, the exit
        code is rendered in decimal and the working directory is verbatim.
        """
        if channel == OutputChannel.STDOUT:
            return self.stdout.strip()
        elif channel == OutputChannel.STDERR:
            return self.stderr.strip()
        elif channel == OutputChannel.EXIT_CODE:
            return str(self.exit_code)
        return self.working_directory


class RunSnapshot(BaseModel):
    """Immutable view of a run at one point in time."""

    model_config = ConfigDict(frozen=True)

    workflow_id: Optional[str] = None
    status: RunStatus = RunStatus.IDLE
    current_node_id: Optional[str] = None
    node_outputs: Dict[str, NodeOutput] = Field(default_factory=dict)
    overall_output: str = ""
    error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.status == RunStatus.RUNNING

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump(mode="json")

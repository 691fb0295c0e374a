"""
Types shared by the script runtimes and their callers.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ExecutionResult(BaseModel):
    """Result of running one script"""

    model_config = ConfigDict(frozen=True)

    success: bool
    return_code: int
    stdout: str = ""
    stderr: str = ""
    command: List[str] = Field(default_factory=list)
    duration: float = 0.0

    @classmethod
    def launch_failure(cls, command: List[str], reason: str, duration: float = 0.0) -> "ExecutionResult":
        """Result for a process that could not be started"""
        return cls(
            success=False,
            return_code=-1,
            stdout="",
            stderr=reason,
            command=list(command),
            duration=duration,
        )


class ScriptRunSnapshot(BaseModel):
    """Observable state of a single script run"""

    model_config = ConfigDict(frozen=True)

    script_id: Optional[str] = None
    is_running: bool = False
    output: str = ""
    error: str = ""
    exit_code: Optional[int] = None

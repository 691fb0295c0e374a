"""
ScriptHub Configuration Package.

This package contains the centralized settings used by the script runtimes
and the workflow engine.
"""

from config.manager import EnvironmentManager, env_manager
from config.types import ToolchainInfo

# Re-export the singleton instance for easy access
env = env_manager

__all__ = [
    "EnvironmentManager",
    "env_manager",
    "env",
    "ToolchainInfo",
]

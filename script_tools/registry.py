"""
Script Registry

In-memory collection of script descriptors, plus loading of the
scripts_config.json file that seeds it.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from config import env_manager
from script_tools.models import Script

logger = logging.getLogger(__name__)

SCRIPTS_CONFIG_FILENAME = "scripts_config.json"


class ScriptRegistry:
    """
    Ordered registry of scripts keyed by id.

    The workflow engine only reads from it (list_scripts / lookup); editing
    operations are for the owner of the registry.
    """

    def __init__(self, scripts: Optional[Iterable[Script]] = None):
        self._scripts: Dict[str, Script] = {}
        for script in scripts or []:
            self.add_script(script)

    def list_scripts(self) -> List[Script]:
        """Return all scripts in insertion order."""
        return list(self._scripts.values())

    def lookup(self, script_id: str) -> Optional[Script]:
        """Return the script with the given id, or None."""
        return self._scripts.get(script_id)

    def add_script(self, script: Script):
        """
        Add a script.

        Raises:
            ValueError: If a script with the same id is already registered
        """
        if script.id in self._scripts:
            raise ValueError(f"Script '{script.id}' is already registered")
        self._scripts[script.id] = script

    def update_script(self, script: Script) -> bool:
        """Replace an existing script; returns False if it is not registered."""
        if script.id not in self._scripts:
            return False
        self._scripts[script.id] = script
        return True

    def remove_script(self, script_id: str) -> bool:
        """Remove a script; returns False if it is not registered."""
        return self._scripts.pop(script_id, None) is not None

    def __contains__(self, script_id: str) -> bool:
        return script_id in self._scripts

    def __len__(self) -> int:
        return len(self._scripts)

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> "ScriptRegistry":
        """Create a registry seeded from the scripts config file."""
        return cls(load_scripts_config(config_path))


def _candidate_config_paths(config_path: Optional[str]) -> List[Path]:
    candidates = []
    if config_path:
        candidates.append(Path(config_path))

    configured = env_manager.resolve_path("scripts_config_path")
    if configured:
        candidates.append(Path(configured))

    candidates.append(Path.cwd() / SCRIPTS_CONFIG_FILENAME)
    candidates.append(Path.cwd().parent / SCRIPTS_CONFIG_FILENAME)
    return candidates


def _load_scripts_from_path(path: Path) -> Optional[List[Script]]:
    if not path.is_file():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("config must be a JSON object")
        entries = data.get("scripts") or []
        if not isinstance(entries, list):
            raise ValueError("'scripts' must be a list")
        scripts = [Script.from_dict(entry) for entry in entries]
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Error loading scripts config from {path}: {e}")
        return None

    logger.info(f"Loaded {len(scripts)} scripts from: {path}")
    return scripts


def load_scripts_config(config_path: Optional[str] = None) -> List[Script]:
    """
    Load script descriptors from the first usable config file.

    Searched in order: the explicit path, the scripts_config_path setting,
    ./scripts_config.json and ../scripts_config.json.

    Args:
        config_path: Optional explicit path to a config file

    Returns:
        List of scripts, empty if no config file could be loaded
    """
    for path in _candidate_config_paths(config_path):
        scripts = _load_scripts_from_path(path)
        if scripts is not None:
            return scripts

    logger.warning(f"Could not find {SCRIPTS_CONFIG_FILENAME} in any standard location")
    return []

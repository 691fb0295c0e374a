"""
Storage abstraction for workflow persistence.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from config import env_manager
from script_tools.models import Script
from script_tools.registry import ScriptRegistry

from .definition import Workflow
from .exceptions import WorkflowDefinitionError

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1


class WorkflowStore(ABC):
    """Abstract storage interface for workflows"""

    @abstractmethod
    def list_workflows(self) -> List[Workflow]:
        """Return all stored workflows"""
        pass

    @abstractmethod
    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Load one workflow"""
        pass

    @abstractmethod
    def save_workflow(self, workflow: Workflow):
        """Persist a workflow, replacing any stored version"""
        pass

    @abstractmethod
    def delete_workflow(self, workflow_id: str) -> bool:
        """Delete a workflow"""
        pass

    def add_workflow(self, workflow: Workflow):
        if self.get_workflow(workflow.id) is not None:
            raise ValueError(f"Workflow '{workflow.id}' already exists")
        self.save_workflow(workflow)

    def update_workflow(self, workflow: Workflow) -> Optional[Workflow]:
        """Store a new version of an existing workflow, bumping its modification time"""
        if self.get_workflow(workflow.id) is None:
            return None
        updated = workflow.copy_with(modified_at=datetime.now())
        self.save_workflow(updated)
        return updated

    def duplicate_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Store a copy of a workflow under a new id"""
        original = self.get_workflow(workflow_id)
        if original is None:
            return None
        now = datetime.now()
        duplicate = original.copy_with(
            id=str(uuid.uuid4()),
            name=f"{original.name} (copy)",
            created_at=now,
            modified_at=now,
        )
        self.save_workflow(duplicate)
        return duplicate

    def export_json(self, scripts: Optional[List[Script]] = None) -> str:
        """
        Export workflows, and optionally scripts, as one JSON document.

        Args:
            scripts: Scripts to include alongside the workflows

        Returns:
            Pretty-printed JSON with sorted keys
        """
        data = {
            "version": EXPORT_VERSION,
            "scripts": [script.to_dict() for script in scripts or []],
            "workflows": [workflow.to_dict() for workflow in self.list_workflows()],
        }
        return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)

    def import_json(self, text: str, registry: Optional[ScriptRegistry] = None) -> bool:
        """
        Merge an exported document into this store and the registry.

        Entries whose id already exists are left untouched.

        Args:
            text: JSON produced by export_json
            registry: Registry receiving imported scripts

        Returns:
            False if the document could not be parsed, True otherwise
        """
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("document must be a JSON object")
            script_entries = data.get("scripts") or []
            workflow_entries = data.get("workflows") or []
            if not isinstance(script_entries, list) or not isinstance(workflow_entries, list):
                raise ValueError("'scripts' and 'workflows' must be lists")
            scripts = [Script.from_dict(entry) for entry in script_entries]
            workflows = [Workflow.from_dict(entry) for entry in workflow_entries]
        except (ValueError, TypeError, AttributeError, WorkflowDefinitionError) as e:
            logger.error(f"Could not import workflows: {e}")
            return False

        if registry is not None:
            for script in scripts:
                if script.id not in registry:
                    registry.add_script(script)

        for workflow in workflows:
            if self.get_workflow(workflow.id) is None:
                self.save_workflow(workflow)

        logger.info(f"Imported {len(workflows)} workflows and {len(scripts)} scripts")
        return True


class InMemoryWorkflowStore(WorkflowStore):
    """Workflow store kept in memory"""

    def __init__(self):
        self._workflows = {}

    def list_workflows(self) -> List[Workflow]:
        return list(self._workflows.values())

    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        return self._workflows.get(workflow_id)

    def save_workflow(self, workflow: Workflow):
        self._workflows[workflow.id] = workflow

    def delete_workflow(self, workflow_id: str) -> bool:
        return self._workflows.pop(workflow_id, None) is not None


class JsonWorkflowStore(WorkflowStore):
    """Filesystem-based workflow storage, one JSON file per workflow"""

    def __init__(self, workflows_dir: Optional[Path] = None):
        """
        Args:
            workflows_dir: Directory holding the workflow files
                (default: workflows_dir setting, relative to the project root)
        """
        if workflows_dir is None:
            workflows_dir = env_manager.resolve_path("workflows_dir")
        self.workflows_dir = Path(workflows_dir)
        self.workflows_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, workflow_id: str) -> Path:
        return self.workflows_dir / f"{workflow_id}.json"

    def _load(self, path: Path) -> Optional[Workflow]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Workflow.from_dict(json.load(f))
        except (OSError, ValueError, TypeError, WorkflowDefinitionError) as e:
            logger.error(f"Could not load workflow from {path}: {e}")
            return None

    def list_workflows(self) -> List[Workflow]:
        workflows = []
        for path in sorted(self.workflows_dir.glob("*.json")):
            workflow = self._load(path)
            if workflow is not None:
                workflows.append(workflow)
        workflows.sort(key=lambda w: w.created_at)
        return workflows

    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        path = self._path(workflow_id)
        if not path.exists():
            return None
        return self._load(path)

    def save_workflow(self, workflow: Workflow):
        path = self._path(workflow.id)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(workflow.to_dict(), f, indent=2, ensure_ascii=False)

    def delete_workflow(self, workflow_id: str) -> bool:
        path = self._path(workflow_id)
        if not path.exists():
            return False
        path.unlink()
        return True

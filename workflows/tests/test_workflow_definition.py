"""
Tests for workflow definitions
"""

import json

import pytest

from workflows import (
    ConstantMapping,
    OutputChannel,
    OutputMapping,
    UserInputMapping,
    Workflow,
    WorkflowDefinitionError,
)

WORKFLOW_YAML = """
workflow:
  id: wf-1
  name: "Organize downloads"
  description: "List then organize"
  nodes:
    - id: list
      scriptId: list-files
      position: {x: 10, y: 20}
      parameterMappings:
        directory:
          type: constant
          value: /tmp/downloads
    - id: organize
      scriptId: file-organizer
      parameterMappings:
        source:
          type: output
          nodeId: list
          outputType: stdout
        mode:
          type: userInput
  connections:
    - id: c1
      fromNodeId: list
      toNodeId: organize
"""


class TestWorkflowDefinition:
    def test_from_yaml(self):
        workflow = Workflow.from_yaml(WORKFLOW_YAML)

        assert workflow.id == "wf-1"
        assert workflow.name == "Organize downloads"
        assert workflow.icon == "flowchart.fill"
        assert workflow.node_ids == ["list", "organize"]
        assert workflow.edges == [("list", "organize")]

        listing = workflow.get_node("list")
        assert listing.position.x == 10
        assert listing.parameter_mappings["directory"] == ConstantMapping("/tmp/downloads")

        organize = workflow.get_node("organize")
        assert organize.parameter_mappings["source"] == OutputMapping("list", OutputChannel.STDOUT)
        assert isinstance(organize.parameter_mappings["mode"], UserInputMapping)
        assert workflow.get_node("missing") is None

    def test_from_json_file(self, tmp_path):
        workflow = Workflow.from_yaml(WORKFLOW_YAML)
        path = tmp_path / "wf.json"
        path.write_text(json.dumps(workflow.to_dict()))

        loaded = Workflow.from_file(str(path))

        assert loaded.to_dict() == workflow.to_dict()

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "wf.yaml"
        path.write_text(Workflow.from_yaml(WORKFLOW_YAML).to_yaml())

        assert Workflow.from_file(str(path)).node_ids == ["list", "organize"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Workflow.from_file(str(tmp_path / "nope.yaml"))

    def test_exit_code_channel(self):
        workflow = Workflow.from_dict(
            {
                "name": "wf",
                "nodes": [
                    {
                        "id": "b",
                        "scriptId": "s",
                        "parameterMappings": {
                            "code": {"type": "output", "nodeId": "a", "outputType": "exitCode"}
                        },
                    }
                ],
            }
        )

        mapping = workflow.get_node("b").parameter_mappings["code"]
        assert mapping.output_type == OutputChannel.EXIT_CODE

    @pytest.mark.parametrize(
        "document,message",
        [
            ("", "empty"),
            ("workflow: [unclosed", "Invalid YAML"),
            ("workflow:\n  name: x\n  nodes:\n    - id: a\n", "scriptId"),
            (
                "workflow:\n  name: x\n  nodes:\n    - id: a\n      scriptId: s\n"
                "      parameterMappings:\n        p: {type: magic}\n",
                "Unknown parameter mapping type",
            ),
            (
                "workflow:\n  name: x\n  nodes:\n    - id: a\n      scriptId: s\n"
                "      parameterMappings:\n        p: {type: output}\n",
                "nodeId",
            ),
            (
                "workflow:\n  name: x\n  connections:\n    - fromNodeId: a\n",
                "toNodeId",
            ),
            ("workflow:\n  name: x\n  nodes: 5\n", "'nodes' must be a list"),
            ("workflow:\n  name: x\n  connections: {a: b}\n", "'connections' must be a list"),
            ("workflow:\n  name: x\n  nodes:\n    - just-an-id\n", "node must be a mapping"),
            ("workflow:\n  name: x\n  connections:\n    - 3\n", "Connection must be a mapping"),
            (
                "workflow:\n  name: x\n  nodes:\n    - id: a\n      scriptId: s\n"
                "      parameterMappings: [p]\n",
                "'parameterMappings' must be a mapping",
            ),
            (
                "workflow:\n  name: x\n  nodes:\n    - id: a\n      scriptId: s\n"
                "      parameterMappings:\n        p: constant\n",
                "Parameter mapping must be a mapping",
            ),
        ],
    )
    def test_invalid_documents(self, document, message):
        with pytest.raises(WorkflowDefinitionError, match=message):
            Workflow.from_yaml(document)

    def test_null_collections_are_empty(self):
        workflow = Workflow.from_yaml(
            "workflow:\n  name: x\n  nodes:\n    - id: a\n      scriptId: s\n"
            "      position:\n      parameterMappings:\n  connections:\n"
        )

        assert workflow.node_ids == ["a"]
        assert workflow.connections == []
        assert workflow.get_node("a").parameter_mappings == {}

    def test_validate(self):
        workflow = Workflow.from_dict(
            {
                "name": "broken",
                "nodes": [
                    {"id": "a", "scriptId": "known"},
                    {"id": "a", "scriptId": "unknown"},
                    {
                        "id": "b",
                        "scriptId": "known",
                        "parameterMappings": {"p": {"type": "output", "nodeId": "ghost"}},
                    },
                ],
                "connections": [{"id": "c1", "fromNodeId": "a", "toNodeId": "nowhere"}],
            }
        )

        errors = workflow.validate(script_ids=["known"])

        assert "Duplicate node IDs found" in errors
        assert any("unknown node 'nowhere'" in e for e in errors)
        assert any("unknown script 'unknown'" in e for e in errors)
        assert any("unknown node 'ghost'" in e for e in errors)

    def test_validate_clean_workflow(self):
        workflow = Workflow.from_yaml(WORKFLOW_YAML)

        assert workflow.validate(script_ids=["list-files", "file-organizer"]) == []

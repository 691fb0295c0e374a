"""
Tests for the scripthub command line
"""

import json

import pytest
from click.testing import CliRunner

from workflows.cli import cli

SCRIPTS = {
    "scripts": [
        {
            "id": "producer",
            "name": "Producer",
            "type": "shell",
            "scriptPath": "produce.sh",
        },
        {
            "id": "consumer",
            "name": "Consumer",
            "type": "shell",
            "scriptPath": "consume.sh",
            "parameters": [{"name": "path", "type": "directory", "defaultValue": "/none"}],
        },
        {
            "id": "fail",
            "name": "Fail",
            "type": "shell",
            "scriptPath": "fail.sh",
        },
    ]
}

CHAIN = """
workflow:
  name: chain
  nodes:
    - id: n2
      scriptId: consumer
      parameterMappings:
        path: {type: output, nodeId: n1}
    - id: n1
      scriptId: producer
  connections:
    - fromNodeId: n1
      toNodeId: n2
"""

FAILING = """
workflow:
  name: failing
  nodes:
    - id: f
      scriptId: fail
    - id: after
      scriptId: producer
  connections:
    - fromNodeId: f
      toNodeId: after
"""

CYCLE = """
workflow:
  name: loop
  nodes:
    - {id: a, scriptId: producer}
    - {id: b, scriptId: producer}
  connections:
    - {fromNodeId: a, toNodeId: b}
    - {fromNodeId: b, toNodeId: a}
"""


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "scripts_config.json").write_text(json.dumps(SCRIPTS))
    (tmp_path / "produce.sh").write_text('#!/bin/bash\necho "/tmp/out dir"\n')
    (tmp_path / "consume.sh").write_text('#!/bin/bash\necho "consumed $1"\n')
    (tmp_path / "fail.sh").write_text('#!/bin/bash\necho "boom" >&2\nexit 5\n')
    (tmp_path / "chain.yaml").write_text(CHAIN)
    (tmp_path / "failing.yaml").write_text(FAILING)
    (tmp_path / "cycle.yaml").write_text(CYCLE)
    return tmp_path


def invoke(project, *args):
    runner = CliRunner()
    return runner.invoke(
        cli,
        [
            "--scripts",
            str(project / "scripts_config.json"),
            "--project-root",
            str(project),
            *args,
        ],
    )


def test_list_scripts(project):
    result = invoke(project, "list-scripts")

    assert result.exit_code == 0
    assert "producer\tshell\tProducer" in result.output
    assert "consumer\tshell\tConsumer" in result.output


def test_order(project):
    result = invoke(project, "order", str(project / "chain.yaml"))

    assert result.exit_code == 0
    assert "1. n1 (producer)\n2. n2 (consumer)" in result.output


def test_order_with_cycle(project):
    result = invoke(project, "order", str(project / "cycle.yaml"))

    assert result.exit_code == 1
    assert "cycle" in result.output


def test_run_script_with_parameters(project):
    result = invoke(project, "run-script", "consumer", "-p", "path=/data/my dir")

    assert result.exit_code == 0
    assert 'consumed "/data/my dir"' in result.output


def test_run_script_failure(project):
    result = invoke(project, "run-script", "fail")

    assert result.exit_code == 1


def test_run_script_unknown(project):
    result = invoke(project, "run-script", "ghost")

    assert result.exit_code == 1
    assert "Unknown script: ghost" in result.output


def test_run_script_bad_parameter(project):
    result = invoke(project, "run-script", "consumer", "-p", "novalue")

    assert result.exit_code == 2


def test_run_workflow(project):
    result = invoke(project, "run-workflow", str(project / "chain.yaml"))

    assert result.exit_code == 0
    assert "🚀 Starting workflow: chain (2 nodes)" in result.output
    assert 'consumed "/tmp/out dir"' in result.output
    assert "🎉 Workflow completed!" in result.output


def test_run_workflow_failure(project):
    result = invoke(project, "run-workflow", str(project / "failing.yaml"))

    assert result.exit_code == 1
    assert "❌ Step 'Fail' failed (exit code: 5)" in result.output
    assert "Error: Step 'Fail' failed" in result.output


def test_run_workflow_cycle(project):
    result = invoke(project, "run-workflow", str(project / "cycle.yaml"))

    assert result.exit_code == 1
    assert "cycle" in result.output


def test_run_workflow_invalid_file(project):
    (project / "bad.yaml").write_text("workflow: [unclosed")

    result = invoke(project, "run-workflow", str(project / "bad.yaml"))

    assert result.exit_code == 1
    assert "Invalid YAML" in result.output

import os

import pytest

from script_tools.executor.utils import (
    build_arguments,
    decode_output,
    format_argument,
    parse_parameter_assignments,
    resolve_source_path,
)
from script_tools.models import Parameter, ParameterType, RuntimeKind, Script


class TestFormatArgument:
    @pytest.mark.parametrize(
        "param_type,value,expected",
        [
            (ParameterType.DIRECTORY, "/tmp/out dir", '"/tmp/out dir"'),
            (ParameterType.FILE, "/tmp/my file.txt", '"/tmp/my file.txt"'),
            (ParameterType.DIRECTORY, "/tmp/out", "/tmp/out"),
            (ParameterType.TEXT, "hello world", "hello world"),
            (ParameterType.CHOICE, "a b", "a b"),
            (ParameterType.INTEGER, "42", "42"),
            (ParameterType.DIRECTORY, "", ""),
        ],
    )
    def test_quoting(self, param_type, value, expected):
        parameter = Parameter(name="p", type=param_type)
        assert format_argument(parameter, value) == expected


class TestBuildArguments:
    def test_declared_order_and_defaults(self):
        script = Script(
            id="s",
            name="S",
            type=RuntimeKind.SHELL,
            script_path="s.sh",
            parameters=(
                Parameter(name="source", type=ParameterType.DIRECTORY, default_value="/in put"),
                Parameter(name="count", type=ParameterType.INTEGER, default_value="1"),
                Parameter(name="label"),
            ),
        )

        arguments = build_arguments(script, {"count": "5"})

        assert arguments == ['"/in put"', "5", ""]


def test_parse_parameter_assignments():
    values = parse_parameter_assignments(["source=/tmp/a b", "expr=x=1"])
    assert values == {"source": "/tmp/a b", "expr": "x=1"}

    with pytest.raises(ValueError, match="name=value"):
        parse_parameter_assignments(["novalue"])


def test_decode_output_replaces_invalid_bytes():
    assert decode_output(None) == ""
    assert decode_output(b"") == ""
    assert decode_output("héllo".encode("utf-8")) == "héllo"
    assert decode_output(b"ok\xff") == "ok\ufffd"


def test_resolve_source_path():
    assert resolve_source_path("Scripts/run.sh", "/project") == os.path.join(
        "/project", "Scripts", "run.sh"
    )
    assert resolve_source_path("/abs/run.sh", "/project") == "/abs/run.sh"

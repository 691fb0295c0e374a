"""
Shared fixtures for script tools tests.

Scripts are real files run by real processes; the compiled toolchain is
replaced by two small shell scripts standing in for the compiler and the
runtime.
"""

import stat
import sys

import pytest

from script_tools.executor import CompiledRuntime, InterpretedRuntime, ShellRuntime
from script_tools.models import RuntimeKind

FAKE_COMPILER = """#!/bin/bash
# usage: fake-compiler -d <out> <source>
out="$2"
src="$3"
if grep -q COMPILE_ERROR "$src"; then
  echo "$src:1: error: cannot compile" >&2
  exit 1
fi
mkdir -p "$out"
touch "$out/$(basename "$src" .java).class"
echo "compiled $src"
"""

FAKE_RUNTIME = """#!/bin/bash
# usage: fake-runtime -cp <out> <class> [args...]
shift 2
echo "running $1"
shift
for arg in "$@"; do
  echo "arg:$arg"
done
"""


@pytest.fixture
def write_script(tmp_path):
    """Factory writing an executable file under tmp_path and returning its path."""

    def _write(name, content):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _write


@pytest.fixture
def fake_toolchain(write_script):
    """Paths of the fake compiler and runtime binaries."""
    compiler = write_script("bin/fake-compiler", FAKE_COMPILER)
    runtime = write_script("bin/fake-runtime", FAKE_RUNTIME)
    return str(compiler), str(runtime)


@pytest.fixture
def build_dir(tmp_path):
    return tmp_path / "classes"


@pytest.fixture
def runtimes(fake_toolchain, build_dir):
    """One runtime per kind, independent of the process environment."""
    compiler, runtime = fake_toolchain
    return {
        RuntimeKind.COMPILED: CompiledRuntime(
            compiler_binary=compiler,
            runtime_binary=runtime,
            build_output_dir=str(build_dir),
        ),
        RuntimeKind.INTERPRETED: InterpretedRuntime(interpreter_binary=sys.executable),
        RuntimeKind.SHELL: ShellRuntime(shell_binary="bash"),
    }

from pydantic import BaseModel


class ToolchainInfo(BaseModel):
    """Binaries used to build and launch scripts"""

    compiler_binary: str = "javac"
    compiled_runtime_binary: str = "java"
    interpreter_binary: str = "python3"
    shell_binary: str = "bash"

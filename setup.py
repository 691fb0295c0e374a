from setuptools import setup, find_packages

setup(
    name="scripthub-engine",
    version="0.1.0",
    description="Workflow engine chaining compiled, interpreted and shell scripts",
    author="ScriptHub Team",
    packages=find_packages(include=["config", "config.*", "script_tools", "script_tools.*", "workflows", "workflows.*"]),
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "click>=8.0.0",
        "psutil>=5.9.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "scripthub=workflows.cli:cli",
        ],
    },
    python_requires=">=3.11",
)

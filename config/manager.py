from pathlib import Path
from typing import Dict, Any, Optional, List
from config.types import ToolchainInfo
import logging
import os


class EnvironmentManager:
    """
    Environment manager holding the settings used to locate scripts,
    build compiled scripts and launch every runtime kind.
    """

    _instance = None

    # Default settings with their types
    DEFAULT_SETTINGS = {
        # Project layout
        "project_root": (None, str),
        "scripts_config_path": ("scripts_config.json", str),
        "workflows_dir": (".scripthub/workflows", str),
        "build_output_dir": ("Build/Classes", str),
        "legacy_build_output_dir": ("out/production/Scripts", str),
        # Toolchain binaries
        "compiler_binary": ("javac", str),
        "compiled_runtime_binary": ("java", str),
        "interpreter_binary": ("python3", str),
        "shell_binary": ("bash", str),
        # Execution behaviour
        "execution_timeout": (0.0, float),
        "strict_references": (False, bool),
        "log_level": ("INFO", str),
    }

    # Create mapping dynamically - each setting can be set via its uppercase env var
    ENV_MAPPING = {setting.upper(): setting for setting in DEFAULT_SETTINGS.keys()}

    # Directories whose presence marks a project root
    PROJECT_MARKERS = ["Scripts", "src"]

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize environment with default values"""
        self.env_variables: Dict[str, str] = {}
        self.settings: Dict[str, Any] = {}
        self.logger = logging.getLogger(__name__)

        # Initialize settings with default values
        for key, (default_value, _) in self.DEFAULT_SETTINGS.items():
            self.settings[key] = default_value

        self._load_from_env_file()

    def _convert_value(self, value: str, target_type: type) -> Any:
        """Convert string value to target type"""
        if target_type == bool:
            return value.lower() in ("true", "1", "yes")
        return target_type(value)

    def _apply_variable(self, key: str, value: str):
        """Store a variable and update the mapped setting if there is one"""
        self.env_variables[key] = value

        if key in self.ENV_MAPPING:
            setting_name = self.ENV_MAPPING[key]
            _, target_type = self.DEFAULT_SETTINGS[setting_name]
            try:
                self.settings[setting_name] = self._convert_value(value, target_type)
            except ValueError:
                self.logger.warning(
                    f"Ignoring invalid value for {key}: {value!r} (expected {target_type.__name__})"
                )

    def _load_from_env_file(self):
        """Find and load variables from a .env file"""
        env_file_paths: List[Path] = []

        if self.settings.get("project_root"):
            env_file_paths.append(Path(self.settings["project_root"]) / ".env")

        # Also check current directory
        env_file_paths.append(Path.cwd() / ".env")

        # Try the home directory - safely handle environments without one
        try:
            env_file_paths.append(Path.home() / ".env")
        except (RuntimeError, OSError):
            pass

        for env_path in env_file_paths:
            if env_path.exists() and env_path.is_file():
                self.logger.debug(f"Loading environment from: {env_path}")
                self._parse_env_file(env_path)
                return

        self.logger.debug(
            "No .env file found; tried: "
            + ", ".join(str(p) for p in env_file_paths)
        )

    def _parse_env_file(self, env_file_path: Path):
        """Parse a .env file and load variables"""
        try:
            with open(env_file_path, "r") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        key = key.strip()
                        value = value.strip()

                        # Remove quotes if present
                        if (value.startswith('"') and value.endswith('"')) or (
                            value.startswith("'") and value.endswith("'")
                        ):
                            value = value[1:-1]

                        self._apply_variable(key, value)

        except OSError as e:
            self.logger.error(f"Error parsing .env file {env_file_path}: {e}")

    def load(self):
        """Load all environment information"""
        self._load_from_env_file()

        # OS environment wins over the .env file
        for key, value in os.environ.items():
            self._apply_variable(key, value)

        return self

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Get a setting value by name"""
        value = self.settings.get(name)
        return default if value is None else value

    def set_setting(self, name: str, value: Any):
        """Override a setting at runtime"""
        if name not in self.DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting: {name}")
        self.settings[name] = value

    def get_project_root(self) -> str:
        """
        Determine the project root.

        Uses the project_root setting when present, otherwise walks up to five
        parents of the working directory looking for a Scripts or src directory.

        Returns:
            Absolute path of the project root
        """
        configured = self.settings.get("project_root")
        if configured:
            return str(Path(configured).resolve())

        current = Path.cwd()
        candidate = current
        for _ in range(5):
            if any((candidate / marker).is_dir() for marker in self.PROJECT_MARKERS):
                return str(candidate)
            if candidate.parent == candidate:
                break
            candidate = candidate.parent

        return str(current)

    def resolve_path(self, name: str, project_root: Optional[str] = None) -> Optional[str]:
        """Resolve a path setting against the project root"""
        value = self.settings.get(name)
        if value is None:
            return None
        path = Path(value)
        if not path.is_absolute():
            path = Path(project_root or self.get_project_root()) / path
        return str(path)

    def get_build_output_dir(self, project_root: Optional[str] = None) -> str:
        """
        Directory holding compiled classes.

        The legacy location is used only when it already exists and the
        current one does not.
        """
        current = self.resolve_path("build_output_dir", project_root)
        legacy = self.resolve_path("legacy_build_output_dir", project_root)
        if not Path(current).exists() and legacy and Path(legacy).exists():
            return legacy
        return current

    def get_toolchain(self) -> ToolchainInfo:
        """Return the configured toolchain binaries"""
        return ToolchainInfo(
            compiler_binary=self.settings["compiler_binary"],
            compiled_runtime_binary=self.settings["compiled_runtime_binary"],
            interpreter_binary=self.settings["interpreter_binary"],
            shell_binary=self.settings["shell_binary"],
        )


# Create singleton instance
env_manager = EnvironmentManager()

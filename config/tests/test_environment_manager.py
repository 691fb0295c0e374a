import os
import unittest
from unittest import mock
from pathlib import Path
import tempfile

from config.manager import EnvironmentManager
from config.types import ToolchainInfo


class TestEnvironmentManager(unittest.TestCase):
    """Test cases for the EnvironmentManager class."""

    def setUp(self):
        """Set up test fixtures."""
        # Create a temporary directory for test files
        self.temp_dir = tempfile.mkdtemp()

        # Store original working directory and work inside the temp dir
        self.original_cwd = os.getcwd()
        os.chdir(self.temp_dir)

        # Create a new instance for each test to avoid singleton issues
        EnvironmentManager._instance = None
        self.env_manager = EnvironmentManager()

    def tearDown(self):
        """Clean up after tests."""
        import shutil

        os.chdir(self.original_cwd)
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        EnvironmentManager._instance = None

    def create_env_file(self, content):
        """Create a temporary .env file with the given content."""
        env_file = Path(self.temp_dir) / ".env"
        env_file.write_text(content)
        return env_file

    def test_initialization(self):
        """Test that EnvironmentManager initializes with default settings."""
        self.assertIsInstance(self.env_manager.settings, dict)

        self.assertEqual(self.env_manager.get_setting("compiler_binary"), "javac")
        self.assertEqual(self.env_manager.get_setting("compiled_runtime_binary"), "java")
        self.assertEqual(self.env_manager.get_setting("interpreter_binary"), "python3")
        self.assertEqual(self.env_manager.get_setting("shell_binary"), "bash")
        self.assertEqual(self.env_manager.get_setting("execution_timeout"), 0.0)
        self.assertFalse(self.env_manager.get_setting("strict_references"))

    def test_singleton_pattern(self):
        """Test that EnvironmentManager follows singleton pattern."""
        EnvironmentManager._instance = None

        manager1 = EnvironmentManager()
        manager2 = EnvironmentManager()

        self.assertIs(manager1, manager2)

    def test_get_setting_default(self):
        """Unset settings fall back to the supplied default."""
        self.assertIsNone(self.env_manager.get_setting("project_root"))
        self.assertEqual(self.env_manager.get_setting("project_root", "/fallback"), "/fallback")
        self.assertEqual(self.env_manager.get_setting("no_such_setting", 42), 42)

    def test_parse_env_file(self):
        """Test parsing an environment file."""
        env_content = """
        # Toolchain overrides
        COMPILER_BINARY=/opt/jdk/bin/javac
        INTERPRETER_BINARY=/usr/local/bin/python3.12
        EXECUTION_TIMEOUT=2.5
        STRICT_REFERENCES=yes
        UNRELATED=value
        """
        env_file = self.create_env_file(env_content)

        self.env_manager._parse_env_file(env_file)

        self.assertEqual(self.env_manager.settings["compiler_binary"], "/opt/jdk/bin/javac")
        self.assertEqual(
            self.env_manager.settings["interpreter_binary"], "/usr/local/bin/python3.12"
        )
        self.assertEqual(self.env_manager.settings["execution_timeout"], 2.5)
        self.assertTrue(self.env_manager.settings["strict_references"])
        self.assertNotIn("unrelated", self.env_manager.settings)
        self.assertEqual(self.env_manager.env_variables["UNRELATED"], "value")

    def test_parse_env_file_with_quotes(self):
        """Test parsing an environment file with quoted values."""
        env_file = self.create_env_file('PROJECT_ROOT="/path/with spaces/project"\n')

        self.env_manager._parse_env_file(env_file)

        self.assertEqual(self.env_manager.settings["project_root"], "/path/with spaces/project")

    def test_invalid_value_is_ignored(self):
        """A value that cannot be converted keeps the previous setting."""
        env_file = self.create_env_file("EXECUTION_TIMEOUT=soon\n")

        self.env_manager._parse_env_file(env_file)

        self.assertEqual(self.env_manager.settings["execution_timeout"], 0.0)

    def test_env_file_loaded_from_cwd(self):
        """A .env file in the working directory is picked up on load."""
        self.create_env_file("SHELL_BINARY=/bin/zsh\n")

        with mock.patch.dict(os.environ, {}, clear=True):
            self.env_manager.load()

        self.assertEqual(self.env_manager.get_setting("shell_binary"), "/bin/zsh")

    def test_os_environment_overrides_env_file(self):
        """OS environment variables win over the .env file."""
        self.create_env_file("SHELL_BINARY=/bin/zsh\n")

        with mock.patch.dict(os.environ, {"SHELL_BINARY": "/bin/sh"}, clear=True):
            self.env_manager.load()

        self.assertEqual(self.env_manager.get_setting("shell_binary"), "/bin/sh")

    def test_set_setting(self):
        """Known settings can be overridden, unknown ones are rejected."""
        self.env_manager.set_setting("strict_references", True)
        self.assertTrue(self.env_manager.get_setting("strict_references"))

        with self.assertRaises(KeyError):
            self.env_manager.set_setting("not_a_setting", 1)

    def test_project_root_from_setting(self):
        """An explicit project_root setting is used as is."""
        self.env_manager.set_setting("project_root", self.temp_dir)

        self.assertEqual(
            self.env_manager.get_project_root(), str(Path(self.temp_dir).resolve())
        )

    def test_project_root_detected_from_marker(self):
        """The nearest parent holding a Scripts directory is the project root."""
        root = Path(self.temp_dir).resolve()
        (root / "Scripts").mkdir()
        nested = root / "a" / "b"
        nested.mkdir(parents=True)
        os.chdir(nested)

        self.assertEqual(self.env_manager.get_project_root(), str(root))

    def test_project_root_falls_back_to_cwd(self):
        """Without markers within five levels the working directory is used."""
        nested = Path(self.temp_dir).resolve() / "a" / "b" / "c" / "d" / "e" / "f"
        nested.mkdir(parents=True)
        os.chdir(nested)

        self.assertEqual(self.env_manager.get_project_root(), str(Path.cwd()))

    def test_resolve_path(self):
        """Relative path settings resolve against the project root."""
        self.assertEqual(
            self.env_manager.resolve_path("build_output_dir", "/project"),
            str(Path("/project") / "Build" / "Classes"),
        )

        self.env_manager.set_setting("build_output_dir", "/abs/classes")
        self.assertEqual(
            self.env_manager.resolve_path("build_output_dir", "/project"), "/abs/classes"
        )

    def test_build_output_dir_prefers_current_location(self):
        """The legacy directory is only used when it exists alone."""
        root = Path(self.temp_dir)
        current = root / "Build" / "Classes"
        legacy = root / "out" / "production" / "Scripts"

        self.assertEqual(self.env_manager.get_build_output_dir(str(root)), str(current))

        legacy.mkdir(parents=True)
        self.assertEqual(self.env_manager.get_build_output_dir(str(root)), str(legacy))

        current.mkdir(parents=True)
        self.assertEqual(self.env_manager.get_build_output_dir(str(root)), str(current))

    def test_get_toolchain(self):
        """Toolchain info mirrors the binary settings."""
        self.env_manager.set_setting("compiled_runtime_binary", "/opt/jdk/bin/java")

        toolchain = self.env_manager.get_toolchain()

        self.assertIsInstance(toolchain, ToolchainInfo)
        self.assertEqual(toolchain.compiler_binary, "javac")
        self.assertEqual(toolchain.compiled_runtime_binary, "/opt/jdk/bin/java")

    def test_load_applies_os_environment(self):
        """Settings set only in the OS environment are picked up on load."""
        with mock.patch.dict(
            os.environ, {"STRICT_REFERENCES": "true", "EXECUTION_TIMEOUT": "7.5"}, clear=True
        ):
            self.env_manager.load()

        self.assertTrue(self.env_manager.get_setting("strict_references"))
        self.assertEqual(self.env_manager.get_setting("execution_timeout"), 7.5)


if __name__ == "__main__":
    unittest.main()

"""
Runtime modules must not depend on test-only libraries.

``shared/test_helpers.py`` ships inside the ``shared`` package but needs the
``test`` extra (PyJWT, cryptography, pytest). Nothing outside the tests may
import it or those libraries directly.
"""

import ast
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent
RUNTIME_DIRS = [PROJECT_ROOT / "shared", PROJECT_ROOT / "service_gateway" / "app"]
TEST_HELPERS = PROJECT_ROOT / "shared" / "test_helpers.py"
TEST_ONLY_MODULES = {"jwt", "cryptography", "pytest"}


def _runtime_files():
    for directory in RUNTIME_DIRS:
        for py_file in sorted(directory.rglob("*.py")):
            if py_file != TEST_HELPERS:
                yield py_file


def _imports(py_file: Path):
    tree = ast.parse(py_file.read_text(), filename=str(py_file))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield alias.name
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            yield node.module


class TestRuntimeImports:
    """Test cases for the runtime/test dependency split."""

    @pytest.mark.parametrize("py_file", list(_runtime_files()), ids=lambda path: path.name)
    def test_no_test_only_imports(self, py_file):
        for module in _imports(py_file):
            assert module.split(".")[0] not in TEST_ONLY_MODULES, f"{py_file} imports {module}"
            assert module != "shared.test_helpers", f"{py_file} imports shared.test_helpers"

    def test_helpers_need_test_extra(self):
        imported = {module.split(".")[0] for module in _imports(TEST_HELPERS)}

        assert {"jwt", "cryptography"} <= imported

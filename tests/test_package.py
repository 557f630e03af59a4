"""Package-level checks: public exports and source conventions."""

import ast
from pathlib import Path

import pytest

import journal_backup

SRC = Path(__file__).parent.parent / "src" / "journal_backup"

# The CLI talks to the user through rich; everything else logs.
LIBRARY_MODULES = sorted(p for p in SRC.rglob("*.py") if "cli" not in p.parts)


class TestExports:
    def test_version(self):
        assert journal_backup.__version__ == "0.1.0"

    @pytest.mark.parametrize("name", journal_backup.__all__)
    def test_all_names_resolve(self, name):
        assert getattr(journal_backup, name) is not None

    def test_core_api_exported(self):
        for name in ("BackupService", "BackupKind", "RestoreOutcome", "open_store", "build_service"):
            assert name in journal_backup.__all__


class TestSourceConventions:
    @pytest.mark.parametrize("path", LIBRARY_MODULES, ids=lambda p: p.name)
    def test_no_print_calls(self, path):
        tree = ast.parse(path.read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
                assert node.func.id != "print", f"{path.name} should log, not print"

    @pytest.mark.parametrize("path", LIBRARY_MODULES, ids=lambda p: p.name)
    def test_no_bare_except(self, path):
        tree = ast.parse(path.read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.ExceptHandler):
                assert node.type is not None, f"bare except in {path.name}"

    def test_logging_modules_use_module_logger(self):
        for path in LIBRARY_MODULES:
            source = path.read_text()
            if "logger." in source:
                assert "logger = logging.getLogger(__name__)" in source, path.name

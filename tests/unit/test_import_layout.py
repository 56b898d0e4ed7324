"""Import layout of the pagepolish package.

Modules import siblings inside the same package relatively and everything
else through the absolute ``pagepolish`` path.
"""

import ast
import pathlib

import pytest

import pagepolish

PACKAGE_ROOT = pathlib.Path(pagepolish.__file__).parent
MODULES = sorted(PACKAGE_ROOT.rglob("*.py"))


def _relative_imports(path):
    tree = ast.parse(path.read_text(encoding="utf-8"))
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.level:
            yield node


@pytest.mark.parametrize("path", MODULES, ids=lambda p: str(p.relative_to(PACKAGE_ROOT)))
def test_no_parent_relative_imports(path):
    offenders = [
        f"line {node.lineno}: from {'.' * node.level}{node.module or ''}"
        for node in _relative_imports(path)
        if node.level > 1
    ]
    assert offenders == []


def test_top_level_modules_import_absolutely():
    for path in PACKAGE_ROOT.glob("*.py"):
        assert list(_relative_imports(path)) == [], path.name


def test_domain_modules_reach_other_contexts_absolutely():
    imported = set()
    for path in (PACKAGE_ROOT / "domains").rglob("*.py"):
        tree = ast.parse(path.read_text(encoding="utf-8"))
        for node in ast.walk(tree):
            if isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
                imported.add(node.module)
    assert "pagepolish.domains.shared.errors" in imported
    assert "pagepolish.dom.document" in imported

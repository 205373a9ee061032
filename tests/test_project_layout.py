from __future__ import annotations

import re
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def test_declared_modules_exist() -> None:
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    block = re.search(r"py-modules = \[(.*?)\]", pyproject, re.S)
    assert block is not None

    modules = re.findall(r'"([^"]+)"', block.group(1))
    assert "megethos" in modules
    for module in modules:
        assert (ROOT / f"{module}.py").exists(), module


def test_package_readme_is_user_documentation() -> None:
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    match = re.search(r'^readme = "([^"]+)"', pyproject, re.M)
    assert match is not None
    assert match.group(1) == "README.md"

    readme = (ROOT / match.group(1)).read_text(encoding="utf-8")
    assert "## Usage" in readme
    assert "megethos" in readme

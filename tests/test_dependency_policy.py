"""Tests enforcing dependency pinning policy for the distribution."""

from __future__ import annotations

import re
from pathlib import Path

import tomllib

ROOT = Path(__file__).resolve().parents[1]

# Import name -> distribution name for every third-party package the library imports.
RUNTIME_IMPORTS = {
    "httpx": "httpx",
    "pydantic": "pydantic",
    "pydantic_settings": "pydantic-settings",
    "cryptography": "cryptography",
    "stellar_sdk": "stellar-sdk",
    "fastapi": "fastapi",
    "uvicorn": "uvicorn",
}


def _project() -> dict:
    data = tomllib.loads((ROOT / "pyproject.toml").read_text(encoding="utf-8"))
    return data["project"]


def _name(requirement: str) -> str:
    return re.split(r"[=<>!~\[ ]", requirement, maxsplit=1)[0].lower()


def test_all_dependencies_are_pinned() -> None:
    """Project dependencies must be pinned to exact versions."""

    project = _project()
    dependencies = project["dependencies"]
    optional = project.get("optional-dependencies", {})

    for requirement in dependencies:
        assert "==" in requirement, f"Core dependency not pinned: {requirement}"

    for group, requirements in optional.items():
        for requirement in requirements:
            assert "==" in requirement, (
                f"Optional dependency '{group}' not pinned: {requirement}"
            )


def test_imported_packages_are_declared() -> None:
    declared = {_name(requirement) for requirement in _project()["dependencies"]}
    sources = "\n".join(
        path.read_text(encoding="utf-8")
        for path in (ROOT / "src" / "tokenops").rglob("*.py")
    )

    for module, distribution in RUNTIME_IMPORTS.items():
        if re.search(rf"^\s*(?:import|from) {module}\b", sources, re.MULTILINE):
            assert distribution in declared, f"{module} imported but not declared"

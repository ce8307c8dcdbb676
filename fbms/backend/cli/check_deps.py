"""Dependency doctor: confirms every runtime and test package imports.

Run as ``fbms check-deps``. Returns 0 when everything is present and 1 when
something is missing, listing the pip command that installs it.
"""

from __future__ import annotations

import importlib
from importlib import metadata

from rich.console import Console
from rich.table import Table

# import name → distribution name on PyPI
RUNTIME: dict[str, str] = {
    "fastapi": "fastapi",
    "uvicorn": "uvicorn",
    "pydantic": "pydantic",
    "sqlalchemy": "SQLAlchemy",
    "pandas": "pandas",
    "yaml": "PyYAML",
    "rich": "rich",
    "click": "click",
}
TESTING: dict[str, str] = {
    "pytest": "pytest",
    "httpx": "httpx",
}


def _probe(module: str, distribution: str) -> str | None:
    """Installed version, or ``None`` when the module cannot be imported."""
    try:
        importlib.import_module(module)
    except ImportError:
        return None
    try:
        return metadata.version(distribution)
    except metadata.PackageNotFoundError:
        return "?"


def main(console: Console | None = None) -> int:
    console = console or Console()
    table = Table(title="FBMS dependencies")
    table.add_column("Package")
    table.add_column("Group")
    table.add_column("Version")

    missing: list[str] = []
    for group, packages in (("runtime", RUNTIME), ("test", TESTING)):
        for module, distribution in packages.items():
            version = _probe(module, distribution)
            if version is None:
                table.add_row(distribution, group, "[red]missing[/red]")
                if group == "runtime":
                    missing.append(distribution)
            else:
                table.add_row(distribution, group, f"[green]{version}[/green]")

    console.print(table)
    if missing:
        console.print(f"[yellow]Install with:[/yellow] pip install {' '.join(missing)}")
        return 1
    console.print("[green]All runtime dependencies present[/green]")
    return 0

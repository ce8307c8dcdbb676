"""Top-level fbms package.

Sub-packages
------------
fbms.backend
    FastAPI server (api/), CLI (cli/), domain rules (core/), ORM (db/),
    schemas/ and services/
"""

from __future__ import annotations

__version__ = "1.0.0"

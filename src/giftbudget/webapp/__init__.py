"""GiftBudget web application package.

``uvicorn giftbudget.webapp:app`` serves an app configured from the
environment; the app is only built on first access so importing the package
does not create a database.
"""
from __future__ import annotations

from typing import Any, List

from fastapi import FastAPI

from .application import create_app
from .persistence import SQLModelStore, StoredValue, build_engine, create_db_and_tables

_APP: FastAPI | None = None

__all__: List[str] = [
    "SQLModelStore",
    "StoredValue",
    "app",
    "build_engine",
    "create_app",
    "create_db_and_tables",
]


def __getattr__(name: str) -> Any:
    global _APP
    if name == "app":
        if _APP is None:
            _APP = create_app()
        return _APP
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable
import json
import os
from pathlib import Path
from typing import Any

import pytest


SAMPLE_DOCS: list[dict[str, Any]] = [
    {"id": "a", "title": "Foo one", "category": "x"},
    {"id": "b", "title": "Bar two", "category": "y"},
    {"id": "c", "title": "Foo three", "category": "x"},
]

SAMPLE_MAPPING = {"ref": "id", "fields": ["title"]}


def make_bundle(
    docs: list[dict[str, Any]] | None = None,
    *,
    ref: str = "id",
    fields: list[str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Index bundle in the shape served by static sites."""
    return {
        "docs": SAMPLE_DOCS if docs is None else docs,
        "mapping": {"ref": ref, "fields": ["title"] if fields is None else fields},
        **extra,
    }


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Drop INSTANTSEARCH_* variables so Settings only sees test values."""
    for key in list(os.environ):
        if key.upper().startswith("INSTANTSEARCH_") or key == "DEPLOYMENT_CONFIG":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def write_bundle(tmp_path: Path) -> Callable[..., Path]:
    """Write a bundle to ``tmp_path`` and return its path."""

    def _write(name: str = "search_index.json", bundle: dict[str, Any] | None = None) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(make_bundle() if bundle is None else bundle), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_js_bundle(tmp_path: Path) -> Callable[..., Path]:
    """Write an offline ``.js`` wrapper around a bundle."""

    def _write(name: str = "search_index.js", bundle: dict[str, Any] | None = None) -> Path:
        payload = json.dumps(make_bundle() if bundle is None else bundle)
        path = tmp_path / name
        path.write_text(f"sessionStorage.setItem('fallback', JSON.stringify({payload}));\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_bundle() -> dict[str, Any]:
    return make_bundle()


@pytest.fixture
def bundle_factory() -> Callable[..., dict[str, Any]]:
    return make_bundle

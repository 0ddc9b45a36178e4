"""Pytest configuration and test categorization.

Tests live in a flat `tests/` directory and are categorized into `unit` and
`regression` via markers so CI can run targeted subsets.
"""

from __future__ import annotations

import pathlib

import pytest


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-apply test category markers based on filename conventions."""
    for item in items:
        name = pathlib.Path(str(item.fspath)).name.lower()

        if "regression" in name:
            item.add_marker(pytest.mark.regression)
        else:
            item.add_marker(pytest.mark.unit)

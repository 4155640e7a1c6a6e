"""Shared pytest fixtures for lazyql unit and integration tests."""
from __future__ import annotations

import pytest

from lazyql import Plan
from tests.fixtures import load_tables

TABLES = load_tables()


@pytest.fixture(scope="session")
def flights() -> Plan:
    """``flights`` with declared columns."""
    return Plan(node=TABLES["flights"])


@pytest.fixture(scope="session")
def planes() -> Plan:
    """``planes`` with declared columns (``tailnum`` and ``year`` collide with flights)."""
    return Plan(node=TABLES["planes"])


@pytest.fixture(scope="session")
def diamonds() -> Plan:
    return Plan(node=TABLES["diamonds"])

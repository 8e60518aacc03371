"""
Test configuration and fixtures for data quality check tests.
"""
from datetime import date, timedelta
from typing import Any, Dict, List

import pytest

from dqcheck.history import InMemoryHistoryStore
from dqcheck.models import ColumnConstraints, ColumnTypeDefinition, ValidationConfig


@pytest.fixture
def validation_config():
    """Configuration with progress output disabled and every check on."""
    return ValidationConfig(enable_progress_reporting=False)


@pytest.fixture
def customer_headers() -> List[str]:
    return ["id", "name", "email", "age", "country"]


@pytest.fixture
def customer_rows() -> List[Dict[str, Any]]:
    """Small customer dataset with a handful of deliberate problems."""
    return [
        {"id": "1", "name": "Alice", "email": "alice@example.com", "age": "34", "country": "NL"},
        {"id": "2", "name": "Bob", "email": "bob@example.com", "age": "29", "country": "DE"},
        {"id": "3", "name": "Carol", "email": "not-an-email", "age": "41", "country": "NL"},
        {"id": "4", "name": "", "email": "dave@example.com", "age": "abc", "country": "FR"},
        {"id": "5", "name": "Eve", "email": "eve@example.com", "age": "150", "country": "XX"},
    ]


@pytest.fixture
def customer_schema() -> List[ColumnTypeDefinition]:
    return [
        ColumnTypeDefinition(name="id", type="integer", required=True, unique=True),
        ColumnTypeDefinition(name="name", type="string", required=True,
                             constraints=ColumnConstraints(min_length=2)),
        ColumnTypeDefinition(name="email", type="email", required=True),
        ColumnTypeDefinition(name="age", type="integer",
                             constraints=ColumnConstraints(min=0, max=120)),
        ColumnTypeDefinition(name="country", type="string",
                             constraints=ColumnConstraints(allowed_values=["NL", "DE", "FR"])),
    ]


@pytest.fixture
def numeric_rows() -> List[Dict[str, Any]]:
    """Forty rows with two linearly related columns and one unrelated column."""
    rows = []
    for i in range(1, 41):
        rows.append({"x": i, "y": 2 * i + 1, "z": (i * 7) % 13})
    return rows


@pytest.fixture
def weekly_sales_rows() -> List[Dict[str, Any]]:
    """Four weeks of daily sales where weekends sell half as much."""
    rows = []
    start = date(2024, 1, 1)  # a Monday
    for offset in range(28):
        day = start + timedelta(days=offset)
        weekend = day.weekday() >= 5
        rows.append({"date": day.isoformat(), "sales": 50 if weekend else 100})
    return rows


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()

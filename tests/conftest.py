# tests/conftest.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Pytest configuration for cppgraph tests.

Ensures the src package is importable and provides the declaration stream
fixtures shared by the unit tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to path for local packages
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def classes_unit():
    """classes.hpp: shapes namespace, abstract Shape, Circle/Rectangle, enums."""
    from cppgraph.declarations import load_declarations

    return load_declarations(FIXTURES / "classes.yaml")


@pytest.fixture
def shapes_impl_unit():
    """shapes.cpp: out-of-line definitions of the Circle/Rectangle methods."""
    from cppgraph.declarations import load_declarations

    return load_declarations(FIXTURES / "shapes_impl.yaml")


@pytest.fixture
def sample_unit():
    """sample.cpp: Container<T>, Base/Derived, main using Container<int>."""
    from cppgraph.declarations import load_declarations

    return load_declarations(FIXTURES / "sample.yaml")


@pytest.fixture
def shapes_driver(classes_unit):
    """A driver that has ingested classes.hpp."""
    from cppgraph.driver import IngestionDriver

    driver = IngestionDriver()
    driver.ingest(classes_unit)
    return driver

"""Shared pytest fixtures for markwell tests."""

from __future__ import annotations

import pytest

from markwell.config import Settings
from markwell.dom import Element, parse_html
from markwell.highlights import RangeGroupPaint
from tests.helpers.page_loads import FlakyPersistence


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any .env file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def paint() -> RangeGroupPaint:
    return RangeGroupPaint()


@pytest.fixture
def persistence() -> FlakyPersistence:
    return FlakyPersistence()


@pytest.fixture
def abcde() -> Element:
    """``<p>ABCDE</p>``"""
    return parse_html("<p>ABCDE</p>")

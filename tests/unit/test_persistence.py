"""Tests for URL keys and persistence gateways."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from markwell.errors import PersistenceError
from markwell.migration import (
    InMemoryPersistence,
    JsonFilePersistence,
    PrunablePersistence,
    normalize_url,
    state_key,
)

if TYPE_CHECKING:
    from pathlib import Path


class TestNormalizeUrl:
    """Tests for normalize_url()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("https://example.com/a/b/", "https://example.com/a/b"),
            ("https://example.com/", "https://example.com/"),
            ("https://example.com", "https://example.com/"),
            ("https://Example.COM/page#section", "https://example.com/page"),
            (
                "https://example.com/p?id=7&utm_source=x&fbclid=abc",
                "https://example.com/p?id=7",
            ),
            ("relative/path", "relative/path"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_url(raw) == expected

    def test_state_key(self) -> None:
        assert (
            state_key("https://example.com/x/#top")
            == "migration_state:https://example.com/x"
        )
        assert state_key("https://example.com/x", "mig") == "mig:https://example.com/x"


class TestInMemoryPersistence:
    """Tests for InMemoryPersistence."""

    @pytest.mark.asyncio
    async def test_values_are_copied(self) -> None:
        """Mutating a returned value does not change what is stored."""
        store = InMemoryPersistence()
        value = {"phase": "phase_1", "metadata": {"retry_count": 0}}
        await store.set("k", value)
        value["phase"] = "mutated"

        loaded = await store.get("k")
        loaded["metadata"]["retry_count"] = 9

        assert await store.get("k") == {"phase": "phase_1", "metadata": {"retry_count": 0}}
        assert store.writes == 1

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        assert await InMemoryPersistence().get("nope") is None

    def test_is_prunable(self) -> None:
        assert isinstance(InMemoryPersistence(), PrunablePersistence)


class TestJsonFilePersistence:
    """Tests for JsonFilePersistence."""

    @pytest.mark.asyncio
    async def test_round_trip_through_disk(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "migration.json"
        store = JsonFilePersistence(path)

        await store.set("a", {"phase": "completed"})
        await store.set("b", {"phase": "failed"})

        reopened = JsonFilePersistence(path)
        assert await reopened.get("a") == {"phase": "completed"}
        assert sorted(await reopened.keys()) == ["a", "b"]
        assert not path.with_suffix(".json.tmp").exists()

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path: Path) -> None:
        store = JsonFilePersistence(tmp_path / "migration.json")
        await store.set("a", 1)
        await store.set("b", 2)

        await store.remove(["a", "missing"])

        assert await store.keys() == ["b"]

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        store = JsonFilePersistence(tmp_path / "absent.json")

        assert await store.get("a") is None
        assert await store.keys() == []

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "migration.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            await JsonFilePersistence(path).get("a")

    @pytest.mark.asyncio
    async def test_non_object_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "migration.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(PersistenceError, match="JSON object"):
            await JsonFilePersistence(path).keys()

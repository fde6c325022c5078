"""Tests for the tree-stability wait and retried decoding."""

from __future__ import annotations

import asyncio
import contextlib

import pytest

from markwell.anchoring import Range, decode_with_retry, encode, wait_for_stability
from markwell.dom import Element, Text, parse_html


class TestWaitForStability:
    """Tests for wait_for_stability()."""

    @pytest.mark.asyncio
    async def test_quiet_tree_is_stable(self, abcde: Element) -> None:
        assert await wait_for_stability(
            abcde, threshold=0.02, max_wait=1.0, poll_interval=0.005
        )

    @pytest.mark.asyncio
    async def test_times_out_while_tree_keeps_changing(self, abcde: Element) -> None:
        """Continuous mutation never reaches the threshold."""
        text = abcde.children[0].children[0]  # type: ignore[union-attr]
        assert isinstance(text, Text)

        async def churn() -> None:
            while True:
                text.data += "x"
                await asyncio.sleep(0.005)

        task = asyncio.create_task(churn())
        try:
            stable = await wait_for_stability(
                abcde, threshold=0.05, max_wait=0.2, poll_interval=0.005
            )
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        assert stable is False

    @pytest.mark.asyncio
    async def test_cancelled_wait_returns_false(self, abcde: Element) -> None:
        cancel = asyncio.Event()
        cancel.set()

        assert not await wait_for_stability(abcde, threshold=0.0, cancel=cancel)


class TestDecodeWithRetry:
    """Tests for decode_with_retry()."""

    @pytest.mark.asyncio
    async def test_immediate_success(self, abcde: Element) -> None:
        text = abcde.children[0].children[0]  # type: ignore[union-attr]
        anchor = encode(Range(text, 1, text, 3), abcde)

        decoded = await decode_with_retry(anchor, abcde, retries=0)

        assert decoded is not None
        assert decoded.to_string() == "BC"

    @pytest.mark.asyncio
    async def test_recovers_after_rerender(self) -> None:
        """An anchor that is stale at first resolves once the page settles."""
        root = parse_html("<p>ABCDE</p>")
        para = root.children[0]
        assert isinstance(para, Element)
        text = para.children[0]
        anchor = encode(Range(text, 0, text, 5), root)
        para.remove_child(text)

        async def rerender() -> None:
            await asyncio.sleep(0.04)
            para.append(Text("ABCDE"))

        task = asyncio.create_task(rerender())
        decoded = await decode_with_retry(
            anchor,
            root,
            retries=5,
            threshold=0.03,
            max_wait=0.5,
            poll_interval=0.005,
        )
        await task

        assert decoded is not None
        assert decoded.to_string() == "ABCDE"

    @pytest.mark.asyncio
    async def test_gives_up_without_fallback(self, abcde: Element) -> None:
        text = abcde.children[0].children[0]  # type: ignore[union-attr]
        anchor = encode(Range(text, 0, text, 2), abcde)
        assert isinstance(text, Text)
        text.data = "ZZZZZ"

        decoded = await decode_with_retry(
            anchor, abcde, retries=2, threshold=0.0, max_wait=0.1, poll_interval=0.005
        )

        assert decoded is None

"""Waiting for the tree to settle before re-resolving anchors.

Pages often re-render shortly after load, so an anchor that fails to
decode immediately may decode a moment later. The wait is an explicit
poll loop with a timeout and an optional cancellation event; nothing is
left running once it returns.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from markwell.anchoring.codec import decode

if TYPE_CHECKING:
    from markwell.anchoring.codec import RangeAnchor
    from markwell.anchoring.range import Range
    from markwell.dom.nodes import Node

logger = logging.getLogger(__name__)


async def wait_for_stability(
    root: Node,
    *,
    threshold: float = 0.15,
    max_wait: float = 5.0,
    poll_interval: float = 0.025,
    cancel: asyncio.Event | None = None,
) -> bool:
    """Wait until the tree under ``root`` has not changed for ``threshold`` seconds.

    Returns:
        True once stable; False on timeout or when ``cancel`` is set.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_wait
    last_revision = root.revision
    last_change = time.monotonic()

    while True:
        if cancel is not None and cancel.is_set():
            logger.debug("Stability wait cancelled")
            return False

        revision = root.revision
        now = time.monotonic()
        if revision != last_revision:
            last_revision = revision
            last_change = now
        elif now - last_change >= threshold:
            return True

        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.debug("Tree did not settle within %.3fs", max_wait)
            return False
        await asyncio.sleep(min(poll_interval, remaining))


async def decode_with_retry(
    anchor: RangeAnchor,
    root: Node,
    *,
    retries: int = 3,
    threshold: float = 0.15,
    max_wait: float = 2.0,
    poll_interval: float = 0.025,
    cancel: asyncio.Event | None = None,
) -> Range | None:
    """Decode ``anchor``, retrying after the tree settles.

    Returns ``None`` once all retries fail; no text-search fallback is tried.
    """
    range_ = decode(anchor, root)
    if range_ is not None:
        return range_

    for attempt in range(1, retries + 1):
        stable = await wait_for_stability(
            root,
            threshold=threshold,
            max_wait=max_wait,
            poll_interval=poll_interval,
            cancel=cancel,
        )
        if cancel is not None and cancel.is_set():
            return None
        if stable:
            range_ = decode(anchor, root)
            if range_ is not None:
                logger.debug("Anchor %s resolved on retry %d", anchor.describe(), attempt)
                return range_

    logger.info("Anchor %s could not be resolved", anchor.describe())
    return None

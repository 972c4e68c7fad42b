"""Bounded polling for remote jobs (assistant runs, transcription jobs)."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

from services.errors import Timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def poll_until(
	probe: Callable[[], Awaitable[T]],
	is_done: Callable[[T], bool],
	*,
	interval: float,
	ceiling: float,
	describe: Callable[[T], str] = str,
	label: str = "remote job",
) -> T:
	"""Call `probe` until `is_done` accepts its result or `ceiling` seconds pass.

	The first probe happens immediately; later probes are spaced `interval`
	seconds apart. Exceptions raised by `probe` propagate unchanged.

	Raises:
		Timeout: if no terminal result was seen within `ceiling` seconds.
	"""
	if interval <= 0 or ceiling <= 0:
		raise ValueError("interval and ceiling must be positive")

	started = time.monotonic()
	while True:
		result = await probe()
		if is_done(result):
			return result
		elapsed = time.monotonic() - started
		if elapsed >= ceiling:
			status = describe(result)
			logger.warning("%s still '%s' after %.1fs; giving up", label, status, elapsed)
			raise Timeout(
				f"{label} did not finish within {ceiling:.0f}s",
				elapsed=elapsed,
				last_status=status,
			)
		await asyncio.sleep(min(interval, max(ceiling - elapsed, 0.0)))

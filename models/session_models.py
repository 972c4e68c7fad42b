"""Session domain models for the chat relay."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SessionState:
	"""In-memory session tracking; owns exactly one conversation handle."""

	session_id: str
	handle: str
	created_at: float = field(default_factory=lambda: time.time())
	turns: int = 0
	turn_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
	# Background thread append from a vision turn that later turns must wait for.
	pending_append: Optional[asyncio.Task] = field(default=None, repr=False)

"""In-memory per-sender conversation sessions.

Every session starts with the fixed system turn and is append-only after
that. Each sender has an asyncio.Lock; the message pipeline holds it while it
handles one message, so messages from one sender are processed one at a time
and history order equals arrival order.

Growth is bounded two ways: sessions idle longer than the TTL are dropped,
and when the store is full the least recently used sender is evicted before
a new one is admitted. A session is never evicted while a message holds
its lock or waits for it.
"""
from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional, Tuple

from core.logging_config import get_logger
from domain.models import Role, Turn

LOGGER = get_logger(__name__)


class ConversationSession:
    """Ordered turns for one sender."""

    def __init__(self, sender: str, system_prompt: str, now: float):
        self.sender = sender
        self.lock = asyncio.Lock()
        self.holders = 0  # tasks holding or queued on ``lock``
        self.last_active = now
        self._turns: List[Turn] = [Turn(Role.SYSTEM, system_prompt)]

    @property
    def busy(self) -> bool:
        return self.holders > 0 or self.lock.locked()

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    def append(self, turn: Turn) -> None:
        if turn.role == Role.SYSTEM:
            raise ValueError("System turn is fixed at session creation")
        self._turns.append(turn)

    def __len__(self) -> int:
        return len(self._turns)


class SessionStore:
    """Process-wide map of sender -> ConversationSession."""

    def __init__(
        self,
        system_prompt: str,
        ttl_seconds: float = 24 * 3600,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.system_prompt = system_prompt
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._sessions: "OrderedDict[str, ConversationSession]" = OrderedDict()

    # -------------------------------------------------------------------------
    # Eviction
    # -------------------------------------------------------------------------

    def _is_expired(self, session: ConversationSession, now: float) -> bool:
        return now - session.last_active > self.ttl_seconds

    def evict_expired(self) -> int:
        """Drop idle sessions. Returns the number evicted."""
        now = self._clock()
        expired = [
            sender
            for sender, session in self._sessions.items()
            if self._is_expired(session, now) and not session.busy
        ]
        for sender in expired:
            del self._sessions[sender]
        if expired:
            LOGGER.info(f"Evicted {len(expired)} idle conversation sessions")
        return len(expired)

    def _make_room(self) -> None:
        self.evict_expired()
        while len(self._sessions) >= self.max_entries:
            victim = next(
                (sender for sender, session in self._sessions.items() if not session.busy),
                None,
            )
            if victim is None:
                LOGGER.warning(
                    f"Session store over capacity ({len(self._sessions)}); every session is busy"
                )
                return
            del self._sessions[victim]
            LOGGER.debug(f"Evicted least recently used session {victim}")

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def get_or_create(self, sender: str) -> ConversationSession:
        """Existing live session for ``sender``, or a new one holding the system turn."""
        now = self._clock()
        session = self._sessions.get(sender)
        if session is not None and self._is_expired(session, now) and not session.busy:
            del self._sessions[sender]
            session = None

        if session is None:
            self._make_room()
            session = ConversationSession(sender, self.system_prompt, now)
            self._sessions[sender] = session
        else:
            session.last_active = now
            self._sessions.move_to_end(sender)
        return session

    def get(self, sender: str) -> Optional[ConversationSession]:
        return self._sessions.get(sender)

    @asynccontextmanager
    async def lock(self, sender: str) -> AsyncIterator[ConversationSession]:
        """
        Hold the per-sender lock: ``async with store.lock(sender):``.

        The session counts as busy, and is kept out of eviction, from the
        moment a caller starts waiting until it releases.
        """
        session = self.get_or_create(sender)
        session.holders += 1
        try:
            async with session.lock:
                yield session
        finally:
            session.holders -= 1

    def append(self, sender: str, role: Role, content: str) -> Turn:
        turn = Turn(role, content)
        self.get_or_create(sender).append(turn)
        return turn

    def history(self, sender: str, max_turns: Optional[int] = None) -> List[Turn]:
        """
        Turns to send to the model: the system turn plus the most recent
        ``max_turns`` conversation turns. Stored history is not modified.
        """
        turns = list(self.get_or_create(sender).turns)
        system, rest = turns[0], turns[1:]
        if max_turns is not None and len(rest) > max_turns:
            rest = rest[-max_turns:]
        return [system, *rest]

    def size(self) -> int:
        return len(self._sessions)

    def __contains__(self, sender: str) -> bool:
        return sender in self._sessions


__all__ = ["ConversationSession", "SessionStore"]

"""
Name equivalence engine.

Answers "are these two given names the same person's name?" for the spelling
variants of Finnish parish records (Liisa / Elisabet, Juho / Johan ...).

Three sources of truth, checked in order:
  1. identical normalized forms
  2. the read-only built-in table (name_variants.BUILTIN_EQUIVALENCES)
  3. the learned table, grown by user confirmations and persisted under
     LEARNED_EQUIVALENCES_KEY

``similarity`` only proposes candidates for confirmation; it never decides
equivalence on its own.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Set

from kalvian_roots.config import get_config
from kalvian_roots.logging import get_logger
from kalvian_roots.normalization.name_variants import BUILTIN_EQUIVALENCES

log = get_logger("name_equivalence")

LEARNED_EQUIVALENCES_KEY = "LearnedNameEquivalences"

_FOLD = str.maketrans({"ä": "a", "ö": "o", "å": "a"})


def normalize(name: Optional[str]) -> str:
    """Lowercase, trim and fold ä/ö/å. Idempotent."""
    if not name:
        return ""
    return name.strip().lower().translate(_FOLD)


def similarity(a: str, b: str) -> float:
    """
    Mean of the Jaccard index of the two character sets and the length
    similarity ``1 - |len a - len b| / max(len)``. Result is in [0, 1].
    """
    n1, n2 = normalize(a), normalize(b)
    if not n1 or not n2:
        return 0.0

    s1, s2 = set(n1), set(n2)
    jaccard = len(s1 & s2) / len(s1 | s2)
    length = 1.0 - abs(len(n1) - len(n2)) / max(len(n1), len(n2))
    return (jaccard + length) / 2.0


# -----------------------------
# Value types
# -----------------------------

@dataclass(frozen=True, slots=True)
class NamePair:
    """An unordered pair of normalized names; ``first <= second``."""
    first: str
    second: str

    @classmethod
    def of(cls, a: str, b: str) -> "NamePair":
        n1, n2 = normalize(a), normalize(b)
        return cls(n1, n2) if n1 <= n2 else cls(n2, n1)

    def __str__(self) -> str:
        return f"{self.first} ↔ {self.second}"


@dataclass(slots=True)
class LearningStatistics:
    total_learned: int = 0
    total_rejected: int = 0
    last_interaction: Optional[datetime] = None
    # monotonic timestamps of confirmation requests
    interactions: Deque[float] = field(default_factory=deque)

    def recent_interactions(self, now: float, window: float) -> int:
        while self.interactions and now - self.interactions[0] > window:
            self.interactions.popleft()
        return len(self.interactions)

    @property
    def learning_rate(self) -> float:
        total = self.total_learned + self.total_rejected
        return self.total_learned / total if total else 0.0


@dataclass(slots=True)
class EquivalenceReport:
    builtin_groups: int
    learned_names: int
    learned_pairs: int
    total_learned: int
    total_rejected: int
    learning_rate: float
    last_interaction: Optional[datetime]
    learned: Dict[str, List[str]]

    def lines(self) -> List[str]:
        out = [
            f"Built-in names: {self.builtin_groups}",
            f"Learned names: {self.learned_names} ({self.learned_pairs} pairs)",
            f"Confirmed: {self.total_learned}, rejected: {self.total_rejected}",
            f"Learning rate: {self.learning_rate:.0%}",
        ]
        for name in sorted(self.learned):
            out.append(f"  {name}: {', '.join(self.learned[name])}")
        return out


class NameEquivalenceState:
    """Built-in and learned tables. Only the learned side is mutable."""

    def __init__(self, builtin: Mapping[str, Iterable[str]] = BUILTIN_EQUIVALENCES):
        self.builtin = builtin
        self.learned: Dict[str, Set[str]] = {}

    def contains(self, n1: str, n2: str) -> bool:
        for table in (self.builtin, self.learned):
            if n2 in table.get(n1, ()) or n1 in table.get(n2, ()):
                return True
        return False

    def add(self, n1: str, n2: str) -> bool:
        """Link two normalized names. Returns False if already linked."""
        if n2 in self.learned.get(n1, ()):
            return False
        self.learned.setdefault(n1, set()).add(n2)
        self.learned.setdefault(n2, set()).add(n1)
        return True

    def to_dict(self) -> Dict[str, List[str]]:
        return {k: sorted(v) for k, v in sorted(self.learned.items())}

    def load(self, data: Mapping[str, Iterable[str]]) -> int:
        added = 0
        for name, others in data.items():
            n1 = normalize(name)
            if not n1:
                continue
            for other in others:
                n2 = normalize(other)
                if n2 and n2 != n1 and self.add(n1, n2):
                    added += 1
        return added


# -----------------------------
# Engine
# -----------------------------

class NameEquivalenceEngine:
    """
    Shared name-equivalence service.

    ``store`` persists the learned table. ``confirmation_handler`` is any
    object with ``async confirm(pair) -> bool``; without one the engine
    never asks and only the tables decide.
    """

    def __init__(
        self,
        store: Any = None,
        confirmation_handler: Any = None,
        *,
        threshold: Optional[float] = None,
        rate_limit: Optional[int] = None,
        rate_window: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        names = get_config().names
        self.store = store
        self.confirmation_handler = confirmation_handler
        self.threshold = float(names["confirmation_threshold"] if threshold is None else threshold)
        self.rate_limit = int(names["rate_limit"] if rate_limit is None else rate_limit)
        self.rate_window = float(
            names["rate_window_seconds"] if rate_window is None else rate_window
        )
        self._clock = clock

        self._lock = threading.RLock()
        self._state = NameEquivalenceState()
        self._stats = LearningStatistics()
        self._rejected: Set[NamePair] = set()
        self._pending: Dict[NamePair, asyncio.Task] = {}
        self._owners: Dict[NamePair, Optional[asyncio.Task]] = {}

        self._load()

    # -- persistence --------------------------------------------------------

    def _load(self) -> None:
        if self.store is None:
            return
        raw = self.store.get(LEARNED_EQUIVALENCES_KEY)
        if raw is None:
            return
        if not isinstance(raw, dict) or not all(isinstance(v, list) for v in raw.values()):
            log.warning("Discarding malformed learned name equivalences")
            return
        with self._lock:
            added = self._state.load(raw)
        log.debug(f"Loaded {added} learned name pair(s)")

    def _save(self) -> None:
        if self.store is None:
            return
        self.store.set(LEARNED_EQUIVALENCES_KEY, self._state.to_dict())

    # -- queries ------------------------------------------------------------

    def are_equivalent(self, a: Optional[str], b: Optional[str]) -> bool:
        if a and a == b:
            return True
        n1, n2 = normalize(a), normalize(b)
        if not n1 or not n2:
            return False
        if n1 == n2:
            return True
        with self._lock:
            return self._state.contains(n1, n2)

    def similarity(self, a: str, b: str) -> float:
        return similarity(a, b)

    def get_equivalents(self, name: str) -> Set[str]:
        n = normalize(name)
        with self._lock:
            out = {n}
            out.update(self._state.builtin.get(n, ()))
            out.update(self._state.learned.get(n, ()))
        return out

    @property
    def statistics(self) -> LearningStatistics:
        return self._stats

    # -- mutations ----------------------------------------------------------

    def learn(self, a: str, b: str) -> None:
        """Record that ``a`` and ``b`` name the same person, and persist."""
        n1, n2 = normalize(a), normalize(b)
        if not n1 or not n2 or n1 == n2:
            return
        pair = NamePair.of(n1, n2)
        with self._lock:
            self._rejected.discard(pair)
            if self._state.add(n1, n2):
                self._stats.total_learned += 1
            self._stats.last_interaction = datetime.now()
            self._save()
        log.info(f"Learned name equivalence: {pair}")

    def reject(self, a: str, b: str) -> None:
        pair = NamePair.of(a, b)
        with self._lock:
            self._rejected.add(pair)
            self._stats.total_rejected += 1
            self._stats.last_interaction = datetime.now()
        log.info(f"Rejected name equivalence: {pair}")

    def import_equivalences(self, mapping: Mapping[str, Iterable[str]]) -> int:
        with self._lock:
            added = self._state.load(mapping)
            self._stats.total_learned += added
            if added:
                self._save()
        log.info(f"Imported {added} name pair(s)")
        return added

    def export_equivalences(self) -> Dict[str, List[str]]:
        with self._lock:
            return self._state.to_dict()

    def clear_learned(self) -> None:
        with self._lock:
            self._state.learned.clear()
            self._rejected.clear()
            self._stats = LearningStatistics()
            self._save()
        log.info("Cleared learned name equivalences")

    def report(self) -> EquivalenceReport:
        with self._lock:
            learned = self._state.to_dict()
            return EquivalenceReport(
                builtin_groups=len(self._state.builtin),
                learned_names=len(learned),
                learned_pairs=sum(len(v) for v in learned.values()) // 2,
                total_learned=self._stats.total_learned,
                total_rejected=self._stats.total_rejected,
                learning_rate=self._stats.learning_rate,
                last_interaction=self._stats.last_interaction,
                learned=learned,
            )

    # -- confirmation -------------------------------------------------------

    def should_ask(self, a: str, b: str) -> bool:
        if self.confirmation_handler is None:
            return False
        pair = NamePair.of(a, b)
        if not pair.first or pair.first == pair.second:
            return False
        if similarity(pair.first, pair.second) < self.threshold:
            return False
        with self._lock:
            if pair in self._pending or pair in self._rejected:
                return False
            recent = self._stats.recent_interactions(self._clock(), self.rate_window)
            return recent < self.rate_limit

    async def confirm_equivalence(self, a: str, b: str) -> bool:
        """
        Ask the confirmation handler whether ``a`` and ``b`` are equivalent.

        Returns True straight away for names that are already equivalent and
        False when no request may be sent. Callers racing on the same pair
        share one request; a cancelled request counts as "not equivalent"
        for everyone except the caller that was cancelled.
        """
        if self.are_equivalent(a, b):
            return True

        pair = NamePair.of(a, b)
        with self._lock:
            shared = self._pending.get(pair)
        if shared is not None:
            await asyncio.wait({shared})
            if shared.cancelled():
                return False
            return shared.result()

        if not self.should_ask(a, b):
            return False

        with self._lock:
            self._stats.interactions.append(self._clock())
            task = asyncio.get_running_loop().create_task(self._ask(pair))
            self._pending[pair] = task
            self._owners[pair] = asyncio.current_task()
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            log.debug(f"Confirmation abandoned: {pair}")
            raise
        finally:
            with self._lock:
                if self._pending.get(pair) is task:
                    del self._pending[pair]
                    self._owners.pop(pair, None)

        # cancelled through cancel_pending() while this caller kept running
        if task.cancelled():
            return False
        return task.result()

    async def _ask(self, pair: NamePair) -> bool:
        log.debug(f"Asking for confirmation: {pair}")
        accepted = bool(await self.confirmation_handler.confirm(pair))
        if accepted:
            self.learn(pair.first, pair.second)
        else:
            self.reject(pair.first, pair.second)
        return accepted

    def pending_pairs(self) -> List[NamePair]:
        with self._lock:
            return sorted(self._pending, key=lambda p: (p.first, p.second))

    def cancel_pending(self, owners: Optional[Iterable[asyncio.Task]] = None) -> int:
        """
        Cancel outstanding confirmation requests, all of them or only those
        started by one of ``owners``. Returns the number cancelled.
        """
        owner_set = set(owners) if owners is not None else None
        cancelled = 0
        with self._lock:
            for pair, task in list(self._pending.items()):
                if owner_set is not None and self._owners.get(pair) not in owner_set:
                    continue
                if not task.done():
                    task.cancel()
                    cancelled += 1
        if cancelled:
            log.info(f"Cancelled {cancelled} confirmation request(s)")
        return cancelled

"""
Family network builder.

Given one parsed nuclear family, fetch and parse every family its tags point
at and record where each referenced person appears:

  as_child         parent's {FAMILY} tag   -> the family they were born into
  as_parent        child's {FAMILY} tag    -> the family they later headed
  spouse_as_child  a married child's spouse -> the spouse's birth family

Only the nuclear family's own tags are read. Resolved families are stored
but never expanded, so a network is exactly one hop deep.

Failures of individual references are tolerated: they become
ResolutionWarning entries and the slot is left empty. Only an unusable
nuclear family makes ``resolve`` fail.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from kalvian_roots.config import get_config
from kalvian_roots.core.exceptions import (
    AmbiguousReference,
    FamilyNotFound,
    InvalidFamily,
    InvalidReference,
    ParsingFailed,
    SubjectNotFound,
)
from kalvian_roots.logging import get_logger
from kalvian_roots.network.family_network import (
    SLOT_AS_CHILD,
    SLOT_AS_PARENT,
    SLOT_SPOUSE_AS_CHILD,
    SLOTS,
    WARN_AMBIGUOUS,
    WARN_BIRTH_DATE_MISMATCH,
    WARN_FAMILY_NOT_FOUND,
    WARN_INVALID_REFERENCE,
    WARN_MISPLACED_TAG,
    WARN_PARSING_FAILED,
    WARN_SUBJECT_NOT_FOUND,
    FamilyNetwork,
    ResolutionWarning,
)
from kalvian_roots.network.ports import FamilyIdValidator, FamilyParser, FamilyTextSource
from kalvian_roots.normalization.name_equivalence import NameEquivalenceEngine, normalize
from kalvian_roots.registry.entities import Family, Person
from kalvian_roots.registry.family_ids import normalize_family_id
from kalvian_roots.registry.keys import key_map

log = get_logger("resolver")


# -----------------------------
# Statistics
# -----------------------------

@dataclass(slots=True)
class ResolutionStatistics:
    successes: Dict[str, int] = field(default_factory=lambda: dict.fromkeys(SLOTS, 0))
    failures: Dict[str, int] = field(default_factory=lambda: dict.fromkeys(SLOTS, 0))

    def record_success(self, slot: str) -> None:
        self.successes[slot] += 1

    def record_failure(self, slot: str) -> None:
        self.failures[slot] += 1

    @property
    def total_attempts(self) -> int:
        return sum(self.successes.values()) + sum(self.failures.values())

    @property
    def total_successes(self) -> int:
        return sum(self.successes.values())

    @property
    def success_rate(self) -> float:
        total = self.total_attempts
        return self.total_successes / total if total else 0.0


# -----------------------------
# Slot requests
# -----------------------------

@dataclass(slots=True)
class SlotRequest:
    slot: str
    key: str
    reference: str
    subject_name: str
    subject_birth_date: Optional[str]
    # True: look among the resolved family's children, else among its parents
    among_children: bool


def _given_name(full_name: str) -> str:
    parts = full_name.split()
    return parts[0] if parts else ""


class FamilyNetworkBuilder:
    """
    Resolves the cross-references of nuclear families.

    Parsed families are cached by ID across calls until ``clear_cache()``;
    within one call a family shared by several slots is fetched once.
    """

    def __init__(
        self,
        source: FamilyTextSource,
        parser: FamilyParser,
        validator: FamilyIdValidator,
        engine: NameEquivalenceEngine,
        *,
        max_concurrency: Optional[int] = None,
    ):
        self.source = source
        self.parser = parser
        self.validator = validator
        self.engine = engine
        if max_concurrency is None:
            max_concurrency = int(get_config().resolver["max_concurrency"])
        self.max_concurrency = max(1, max_concurrency)

        self.statistics = ResolutionStatistics()
        self._cache: Dict[str, Family] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._waiters: Dict[str, int] = {}

    # -- cache --------------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()
        log.debug("Family cache cleared")

    def reset_statistics(self) -> None:
        self.statistics = ResolutionStatistics()

    @property
    def cached_family_ids(self) -> List[str]:
        return sorted(self._cache)

    # -- entry point --------------------------------------------------------

    async def resolve(self, nuclear_family: Optional[Family]) -> FamilyNetwork:
        if nuclear_family is None or nuclear_family.is_empty:
            raise InvalidFamily("Nuclear family has no parents or children")

        network = FamilyNetwork(nuclear_family)
        requests = self._collect_requests(network)
        log.info(
            f"Resolving {nuclear_family.family_id}: {len(requests)} cross-reference(s)"
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)
        write_lock = asyncio.Lock()
        tasks = [
            asyncio.create_task(self._resolve_slot(network, req, semaphore, write_lock))
            for req in requests
        ]
        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            # fetches shared with other resolutions stop only when their last waiter goes
            for task in tasks:
                task.cancel()
            self.engine.cancel_pending(owners=tasks)
            await asyncio.gather(*tasks, return_exceptions=True)
            log.info(f"Resolution of {nuclear_family.family_id} cancelled")
            raise

        log.info(
            f"Resolved {nuclear_family.family_id}: "
            f"{network.total_resolved_families} family(ies), "
            f"{len(network.warnings)} warning(s)"
        )
        return network

    # -- request collection -------------------------------------------------

    def _collect_requests(self, network: FamilyNetwork) -> List[SlotRequest]:
        family = network.main_family
        nuclear_id = normalize_family_id(family.family_id)
        keys = key_map(family)
        requests: List[SlotRequest] = []

        def reference(slot: str, key: str, tag: Optional[str]) -> Optional[str]:
            fid = normalize_family_id(tag)
            if fid is None:
                return None
            if fid == nuclear_id:
                log.debug(f"{key}: reference to own family {fid} ignored")
                return None
            if not self.validator.is_valid_family_id(fid):
                err = InvalidReference(tag)
                log.warning(f"{key}: {err}")
                network._warn(
                    ResolutionWarning(WARN_INVALID_REFERENCE, slot, key, tag, str(err), err)
                )
                self.statistics.record_failure(slot)
                return None
            return fid

        for parent in family.all_parents:
            key = keys[id(parent)].key
            if parent.as_parent_reference:
                self._misplaced(network, key, "parent", parent.as_parent_reference)
            fid = reference(SLOT_AS_CHILD, key, parent.as_child_reference)
            if fid:
                requests.append(
                    SlotRequest(SLOT_AS_CHILD, key, fid, parent.name, parent.birth_date, True)
                )

        for child in family.all_children:
            key = keys[id(child)].key
            if child.as_child_reference:
                self._misplaced(network, key, "child", child.as_child_reference)
            fid = reference(SLOT_AS_PARENT, key, child.as_parent_reference)
            if fid:
                requests.append(
                    SlotRequest(SLOT_AS_PARENT, key, fid, child.name, child.birth_date, False)
                )

        # same-named spouses from different families get "<spouse> (spouse of <child key>)"
        by_spouse: Dict[str, List[tuple]] = {}
        for child in family.married_children:
            spouse = (child.spouse or "").strip()
            if not spouse or not child.spouse_parents_family_id:
                continue
            by_spouse.setdefault(normalize(spouse), []).append((spouse, child))

        for entries in by_spouse.values():
            tags = {normalize_family_id(c.spouse_parents_family_id) for _, c in entries}
            requested = set()
            for spouse, child in entries:
                tag = child.spouse_parents_family_id
                if normalize_family_id(tag) in requested:
                    log.debug(f"Spouse {spouse} from {tag} already requested; skipping duplicate")
                    continue
                requested.add(normalize_family_id(tag))

                key = spouse
                if len(tags) > 1:
                    key = f"{spouse} (spouse of {keys[id(child)].key})"
                fid = reference(SLOT_SPOUSE_AS_CHILD, key, tag)
                if fid:
                    requests.append(
                        SlotRequest(
                            SLOT_SPOUSE_AS_CHILD,
                            key,
                            fid,
                            _given_name(spouse),
                            child.spouse_birth_date,
                            True,
                        )
                    )

        return requests

    def _misplaced(self, network: FamilyNetwork, key: str, role: str, tag: str) -> None:
        wrong = "as-parent" if role == "parent" else "as-child"
        message = f"{key}: {role} carries an {wrong} reference {tag}; ignored"
        log.warning(message)
        network._warn(ResolutionWarning(WARN_MISPLACED_TAG, None, key, tag, message))

    # -- per-slot resolution ------------------------------------------------

    async def _resolve_slot(
        self,
        network: FamilyNetwork,
        req: SlotRequest,
        semaphore: asyncio.Semaphore,
        write_lock: asyncio.Lock,
    ) -> None:
        try:
            async with semaphore:
                family = await self._get_family(req.reference)
        except (FamilyNotFound, ParsingFailed) as exc:
            kind = WARN_FAMILY_NOT_FOUND if isinstance(exc, FamilyNotFound) else WARN_PARSING_FAILED
            log.warning(f"{req.slot} {req.key} -> {req.reference}: {exc}")
            async with write_lock:
                network._warn(
                    ResolutionWarning(kind, req.slot, req.key, req.reference, str(exc), exc)
                )
                self.statistics.record_failure(req.slot)
            return
        except Exception as exc:
            # collaborator errors (timeouts, provider failures) stay per-reference
            log.warning(f"{req.slot} {req.key} -> {req.reference}: unexpected {exc!r}")
            async with write_lock:
                network._warn(
                    ResolutionWarning(
                        WARN_PARSING_FAILED, req.slot, req.key, req.reference, repr(exc), exc
                    )
                )
                self.statistics.record_failure(req.slot)
            return

        subject, warnings = await self._locate_subject(req, family)

        async with write_lock:
            network._attach(req.slot, req.key, family, subject)
            for w in warnings:
                network._warn(w)
            self.statistics.record_success(req.slot)

        log.debug(
            f"{req.slot} {req.key} -> {family.family_id}"
            + ("" if subject else " (no subject)")
        )

    async def _get_family(self, family_id: str) -> Family:
        cached = self._cache.get(family_id)
        if cached is not None:
            return cached

        task = self._inflight.get(family_id)
        if task is None:
            task = asyncio.create_task(self._fetch(family_id))
            self._inflight[family_id] = task
            task.add_done_callback(lambda t, fid=family_id: self._forget(fid, t))

        # one slot giving up must not cancel a fetch other slots share
        self._waiters[family_id] = self._waiters.get(family_id, 0) + 1
        try:
            return await asyncio.shield(task)
        finally:
            self._waiters[family_id] -= 1
            if not self._waiters[family_id]:
                del self._waiters[family_id]
                if not task.done():
                    log.debug(f"Abandoning fetch of {family_id}: no waiters left")
                    self._forget(family_id, task)
                    task.cancel()

    def _forget(self, family_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(family_id) is task:
            del self._inflight[family_id]

    async def _fetch(self, family_id: str) -> Family:
        log.debug(f"Fetching {family_id}")
        text = await self.source.extract_family_text(family_id)
        family = await self.parser.parse_family(family_id, text)
        if family is None:
            raise ParsingFailed(f"parser returned nothing for {family_id}")
        if normalize_family_id(family.family_id) != family_id:
            log.warning(f"Requested {family_id}, parser returned {family.family_id}")
        self._cache[family_id] = family
        return family

    async def _locate_subject(self, req: SlotRequest, family: Family):
        """
        Find the referenced person in ``family``. Returns (person or None,
        warnings); never raises for a missing or ambiguous subject.
        """
        pool = family.all_children if req.among_children else family.all_parents
        warnings: List[ResolutionWarning] = []

        matches = [p for p in pool if self.engine.are_equivalent(p.name, req.subject_name)]

        if len(matches) > 1 and req.subject_birth_date:
            birth = req.subject_birth_date.strip()
            narrowed = [p for p in matches if (p.birth_date or "").strip() == birth]
            if narrowed:
                matches = narrowed

        if len(matches) > 1:
            err = AmbiguousReference(req.subject_name, len(matches))
            log.warning(f"{req.key} in {family.family_id}: {err}")
            warnings.append(
                ResolutionWarning(WARN_AMBIGUOUS, req.slot, req.key, req.reference, str(err), err)
            )
            return None, warnings

        subject: Optional[Person] = matches[0] if matches else None

        if subject is None:
            for candidate in pool:
                if await self.engine.confirm_equivalence(req.subject_name, candidate.name):
                    subject = candidate
                    break

        if subject is None:
            err = SubjectNotFound(req.subject_name, family.family_id)
            log.warning(str(err))
            warnings.append(
                ResolutionWarning(
                    WARN_SUBJECT_NOT_FOUND, req.slot, req.key, req.reference, str(err), err
                )
            )
            return None, warnings

        if (
            req.subject_birth_date
            and subject.birth_date
            and req.subject_birth_date.strip() != subject.birth_date.strip()
        ):
            message = (
                f"{req.key}: birth date {req.subject_birth_date} differs from "
                f"{subject.birth_date} in {family.family_id}"
            )
            log.warning(message)
            warnings.append(
                ResolutionWarning(
                    WARN_BIRTH_DATE_MISMATCH, req.slot, req.key, req.reference, message
                )
            )

        return subject, warnings

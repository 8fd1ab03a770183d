from __future__ import annotations

import asyncio
import time
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from kalvian_roots.citations.generator import CitationSynthesizer
from kalvian_roots.core.context import RootsContext
from kalvian_roots.core.exceptions import ResolutionCancelled, RootsError
from kalvian_roots.network.cache import FamilyNetworkCache
from kalvian_roots.network.family_network import FamilyNetwork
from kalvian_roots.network.ports import FamilyParser, FamilyTextSource
from kalvian_roots.network.resolver import FamilyNetworkBuilder
from kalvian_roots.persistence.overrides import CitationOverrides
from kalvian_roots.registry.entities import Family, Person
from kalvian_roots.registry.family_ids import normalize_family_id
from kalvian_roots.registry.keys import person_keys


class WorkflowState(str, Enum):
    IDLE = "idle"
    EXTRACTING_TEXT = "extracting_text"
    PARSING_WITH_AI = "parsing_with_ai"
    FAMILY_EXTRACTED = "family_extracted"
    RESOLVING_CROSS_REFERENCES = "resolving_cross_references"
    CROSS_REFERENCES_RESOLVED = "cross_references_resolved"
    COMPLETE = "complete"
    FAILED = "failed"


PROGRESS = {
    WorkflowState.IDLE: 0.0,
    WorkflowState.EXTRACTING_TEXT: 0.1,
    WorkflowState.PARSING_WITH_AI: 0.3,
    WorkflowState.FAMILY_EXTRACTED: 0.5,
    WorkflowState.RESOLVING_CROSS_REFERENCES: 0.6,
    WorkflowState.CROSS_REFERENCES_RESOLVED: 0.9,
    WorkflowState.COMPLETE: 1.0,
}

STEP_LABELS = {
    WorkflowState.IDLE: "Ready",
    WorkflowState.EXTRACTING_TEXT: "Extracting family text",
    WorkflowState.PARSING_WITH_AI: "Parsing family",
    WorkflowState.FAMILY_EXTRACTED: "Family extracted",
    WorkflowState.RESOLVING_CROSS_REFERENCES: "Resolving cross-references",
    WorkflowState.CROSS_REFERENCES_RESOLVED: "Cross-references resolved",
    WorkflowState.COMPLETE: "Complete",
    WorkflowState.FAILED: "Failed",
}

TERMINAL_STATES = (WorkflowState.COMPLETE, WorkflowState.FAILED)


class WorkflowCoordinator:
    """
    Drives one family from ID to citations.
    No business logic lives here.
    """

    def __init__(
        self,
        context: RootsContext,
        source: FamilyTextSource,
        parser: FamilyParser,
        builder: FamilyNetworkBuilder,
        synthesizer: Optional[CitationSynthesizer] = None,
        overrides: Optional[CitationOverrides] = None,
        network_cache: Optional[FamilyNetworkCache] = None,
    ):
        self.ctx = context
        self.log = context.logger
        self.source = source
        self.parser = parser
        self.builder = builder
        self.synthesizer = synthesizer or CitationSynthesizer()
        self.overrides = overrides
        self.network_cache = network_cache if network_cache is not None else FamilyNetworkCache()

        self.state = WorkflowState.IDLE
        self.error: Optional[Exception] = None
        self._progress = 0.0
        self.family: Optional[Family] = None
        self.network: Optional[FamilyNetwork] = None

    # -- state --------------------------------------------------------------

    def _set(self, state: WorkflowState) -> None:
        self.state = state
        self._progress = PROGRESS.get(state, self._progress)
        self.log.debug(f"Workflow: {state.value}")

    def _fail(self, error: Exception) -> None:
        self.error = error
        self.state = WorkflowState.FAILED
        self.ctx.errors.append(error)

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def step_label(self) -> str:
        return STEP_LABELS[self.state]

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    # -- running ------------------------------------------------------------

    async def run(self, family_id: str) -> FamilyNetwork:
        fid = normalize_family_id(family_id) or ""
        self.error = None
        self.family = None
        self.network = None

        cached = self.network_cache.get(fid)
        if cached is not None:
            self.log.info(f"Using cached network for {fid}")
            self.family = cached.main_family
            self.network = cached
            self._set(WorkflowState.COMPLETE)
            return cached

        self.log.info(f"Workflow starting for {fid}")
        try:
            self._set(WorkflowState.EXTRACTING_TEXT)
            text = await self.source.extract_family_text(fid)

            self._set(WorkflowState.PARSING_WITH_AI)
            family = await self.parser.parse_family(fid, text)
            for issue in family.validate_structure():
                self.log.warning(f"{fid}: {issue}")
            self.family = family
            self._set(WorkflowState.FAMILY_EXTRACTED)
        except asyncio.CancelledError:
            self._fail(ResolutionCancelled(f"Workflow for {fid} cancelled"))
            raise
        except RootsError as exc:
            self.log.exception(f"Could not load nuclear family {fid}")
            self._fail(exc)
            raise
        except Exception as exc:
            self.log.exception(f"Workflow execution failed for {fid}")
            err = RootsError(str(exc))
            self._fail(err)
            raise err from exc

        network = await self.resolve_cross_references(family)
        self._set(WorkflowState.COMPLETE)
        self.log.info("Workflow completed successfully")
        return network

    async def resolve_cross_references(self, family: Family) -> FamilyNetwork:
        self.family = family
        self._set(WorkflowState.RESOLVING_CROSS_REFERENCES)
        t0 = time.perf_counter()
        try:
            network = await self.builder.resolve(family)
        except asyncio.CancelledError:
            self._fail(ResolutionCancelled(f"Resolution of {family.family_id} cancelled"))
            raise
        except RootsError as exc:
            self.log.exception(f"Cross-reference resolution failed for {family.family_id}")
            self._fail(exc)
            raise
        except Exception as exc:
            self.log.exception(f"Cross-reference resolution failed for {family.family_id}")
            err = RootsError(str(exc))
            self._fail(err)
            raise err from exc

        elapsed = time.perf_counter() - t0
        self.network = network
        self.network_cache.put(network, elapsed)
        self.ctx.stats[family.family_id] = {
            "resolved_families": network.total_resolved_families,
            "warnings": len(network.warnings),
            "seconds": round(elapsed, 3),
        }
        self._set(WorkflowState.CROSS_REFERENCES_RESOLVED)
        return network

    # -- citations ----------------------------------------------------------

    def get_family_network(self) -> Optional[FamilyNetwork]:
        return self.network

    def _network_for(self, family: Family) -> Optional[FamilyNetwork]:
        if self.network is not None and self.network.main_family is family:
            return self.network
        return None

    def generate_citation(self, person: Person, family: Optional[Family] = None) -> str:
        family = family or self.family
        if family is None:
            raise RootsError("No family loaded")

        if self.overrides is not None:
            manual = self.overrides.get(family.family_id, person)
            if manual is not None:
                return manual

        network = self._network_for(family)
        if network is None:
            return self.synthesizer.family_citation(family)
        return self.synthesizer.person_citation(person, network)

    def generate_family_citation(self, family: Optional[Family] = None) -> str:
        family = family or self.family
        if family is None:
            raise RootsError("No family loaded")
        return self.synthesizer.family_citation(family)

    def get_active_citations(self) -> Mapping[str, str]:
        """Snapshot of every citation for the current network, manual overrides applied."""
        if self.network is None:
            return MappingProxyType({})

        citations = self.synthesizer.citation_map(self.network)
        if self.overrides is not None:
            nuclear = self.network.main_family
            for pk in person_keys(nuclear):
                manual = self.overrides.get(nuclear.family_id, pk.person)
                if manual is not None:
                    citations[pk.key] = manual
        return MappingProxyType(citations)

    def set_manual_citation(
        self, person: Person, text: str, family: Optional[Family] = None
    ) -> None:
        family = family or self.family
        if family is None:
            raise RootsError("No family loaded")
        if self.overrides is None:
            raise RootsError("No citation override store configured")
        self.overrides.set(family.family_id, person, text)

    def reset(self) -> None:
        """Forget everything derived from the current source file."""
        self.family = None
        self.network = None
        self.error = None
        self.builder.clear_cache()
        self.network_cache.clear()
        self._set(WorkflowState.IDLE)
        self.log.info("Workflow reset")

# tests/test_workflow.py

from __future__ import annotations

import asyncio

import pytest

from kalvian_roots.adapters.json_source import JsonFamilySource
from kalvian_roots.config import get_config
from kalvian_roots.core.context import RootsContext
from kalvian_roots.core.exceptions import FamilyNotFound, ResolutionCancelled, RootsError
from kalvian_roots.core.workflow import WorkflowCoordinator, WorkflowState
from kalvian_roots.logging import get_logger
from kalvian_roots.network.cache import FamilyNetworkCache
from kalvian_roots.network.resolver import FamilyNetworkBuilder
from kalvian_roots.persistence.overrides import CitationOverrides


def _workflow(source, engine, store=None):
    ctx = RootsContext(config=get_config(), logger=get_logger("workflow"), store=store)
    builder = FamilyNetworkBuilder(source, source, source, engine)
    overrides = CitationOverrides(store) if store is not None else None
    return WorkflowCoordinator(
        ctx,
        source,
        source,
        builder,
        overrides=overrides,
        network_cache=FamilyNetworkCache(store),
    )


def test_run_reaches_complete(source, engine, store) -> None:
    wf = _workflow(source, engine, store)
    assert wf.state == WorkflowState.IDLE
    assert wf.progress == 0.0

    network = asyncio.run(wf.run("korpi 6"))

    assert wf.state == WorkflowState.COMPLETE
    assert wf.is_terminal
    assert wf.progress == 1.0
    assert wf.step_label == "Complete"
    assert wf.family.family_id == "KORPI 6"
    assert wf.get_family_network() is network
    assert wf.ctx.stats["KORPI 6"]["resolved_families"] == 4
    assert wf.ctx.stats["KORPI 6"]["warnings"] == 1


def test_second_run_uses_cached_network(source, engine, store) -> None:
    wf = _workflow(source, engine, store)
    first = asyncio.run(wf.run("KORPI 6"))
    requests = dict(source.requests)

    second = asyncio.run(wf.run("KORPI 6"))

    assert second is first
    assert source.requests == requests
    assert wf.state == WorkflowState.COMPLETE
    assert "KORPI 6" in wf.network_cache.persisted_summaries()


def test_active_citations_are_read_only(source, engine, store) -> None:
    wf = _workflow(source, engine, store)
    assert len(wf.get_active_citations()) == 0

    asyncio.run(wf.run("KORPI 6"))
    citations = wf.get_active_citations()

    assert "KORPI 6" in citations
    assert "Matti Erikinp." in citations
    with pytest.raises(TypeError):
        citations["KORPI 6"] = "edited"


def test_manual_citation_wins(source, engine, store) -> None:
    wf = _workflow(source, engine, store)
    asyncio.run(wf.run("KORPI 6"))
    matti = wf.family.primary_couple.husband

    generated = wf.generate_citation(matti)
    assert "→ Matti, b. 6 January 1759" in generated

    wf.set_manual_citation(matti, "Hand-checked: KORPI 5, page 100")

    assert wf.generate_citation(matti) == "Hand-checked: KORPI 5, page 100"
    assert wf.get_active_citations()["Matti Erikinp."] == "Hand-checked: KORPI 5, page 100"
    # stored under the person's ID and visible to a fresh override view
    assert CitationOverrides(store).get("KORPI 6", "Matti-Erikinp.-06.01.1759") == (
        "Hand-checked: KORPI 5, page 100"
    )


def test_manual_citation_needs_a_store(source, engine) -> None:
    wf = _workflow(source, engine)
    asyncio.run(wf.run("KORPI 6"))
    with pytest.raises(RootsError):
        wf.set_manual_citation(wf.family.primary_couple.husband, "text")


def test_citation_for_family_outside_network(source, engine, families_data) -> None:
    from kalvian_roots.registry.serialization import family_from_dict

    wf = _workflow(source, engine)
    asyncio.run(wf.run("KORPI 6"))
    korpi_5 = family_from_dict(families_data[1])

    text = wf.generate_citation(korpi_5.primary_couple.husband, korpi_5)
    assert text == wf.generate_family_citation(korpi_5)
    assert text.startswith("Information on page 100 includes:")


def test_no_family_loaded(source, engine) -> None:
    wf = _workflow(source, engine)
    with pytest.raises(RootsError):
        wf.generate_family_citation()


def test_reset(source, engine, store) -> None:
    wf = _workflow(source, engine, store)
    asyncio.run(wf.run("KORPI 6"))

    wf.reset()

    assert wf.state == WorkflowState.IDLE
    assert wf.family is None
    assert wf.get_family_network() is None
    assert wf.builder.cached_family_ids == []
    assert len(wf.network_cache) == 0
    assert wf.network_cache.persisted_summaries() == {}


def test_missing_nuclear_family_fails(source, engine) -> None:
    wf = _workflow(source, engine)
    with pytest.raises(FamilyNotFound):
        asyncio.run(wf.run("KORPI 99"))

    assert wf.state == WorkflowState.FAILED
    assert wf.is_terminal
    assert isinstance(wf.error, FamilyNotFound)
    assert wf.ctx.errors == [wf.error]


def test_unexpected_errors_are_wrapped(engine) -> None:
    class BrokenSource(JsonFamilySource):
        async def parse_family(self, family_id, text):
            raise KeyError("couples")

    src = BrokenSource({"KORPI 1": {"familyId": "KORPI 1"}})
    wf = _workflow(src, engine)

    with pytest.raises(RootsError):
        asyncio.run(wf.run("KORPI 1"))
    assert wf.state == WorkflowState.FAILED
    assert isinstance(wf.error.__cause__, KeyError)


def test_unexpected_resolution_errors_are_wrapped(source, engine) -> None:
    class BrokenBuilder(FamilyNetworkBuilder):
        async def resolve(self, nuclear_family):
            raise TimeoutError("AI provider timed out")

    wf = _workflow(source, engine)
    wf.builder = BrokenBuilder(source, source, source, engine)

    with pytest.raises(RootsError) as excinfo:
        asyncio.run(wf.run("KORPI 6"))

    assert wf.state == WorkflowState.FAILED
    assert wf.error is excinfo.value
    assert isinstance(wf.error.__cause__, TimeoutError)
    assert wf.ctx.errors == [wf.error]
    assert wf.network is None


def test_referenced_family_timeout_does_not_fail_workflow(families_data, engine) -> None:
    class FlakyParser(JsonFamilySource):
        async def parse_family(self, family_id, text):
            if family_id == "HYYPPÄ 3":
                raise TimeoutError("AI provider timed out")
            return await super().parse_family(family_id, text)

    wf = _workflow(FlakyParser.from_data(families_data), engine)
    network = asyncio.run(wf.run("KORPI 6"))

    assert wf.state == WorkflowState.COMPLETE
    assert wf.error is None
    assert "Brita Jaakont." not in network.as_child_families
    assert wf.ctx.stats["KORPI 6"]["warnings"] == 2


def test_cancellation_marks_workflow_failed(families_data, engine) -> None:
    class StallingSource(JsonFamilySource):
        async def extract_family_text(self, family_id):
            if family_id != "KORPI 6":
                await asyncio.Event().wait()
            return await super().extract_family_text(family_id)

    src = StallingSource.from_data(families_data)
    wf = _workflow(src, engine)

    async def scenario():
        task = asyncio.create_task(wf.run("KORPI 6"))
        for _ in range(10):
            await asyncio.sleep(0)
        assert wf.state == WorkflowState.RESOLVING_CROSS_REFERENCES
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert wf.state == WorkflowState.FAILED
    assert isinstance(wf.error, ResolutionCancelled)
    assert wf.network is None

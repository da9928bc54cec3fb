import asyncio
import threading
from unittest.mock import MagicMock

from fieldreport.session.autosave import AutosaveScheduler
from fieldreport.session.editor import EditorSession
from fieldreport.store.audit import AuditRecorder
from fieldreport.store.memory_store import InMemoryDocumentStore


def _make_session(draft_document, store: InMemoryDocumentStore, fixed_now) -> EditorSession:
    return EditorSession(
        draft_document, store, AuditRecorder(store, "tech-42"), clock=lambda: fixed_now
    )


class TestTick:
    def test_tick_saves_dirty_document(self, draft_document, memory_store, fixed_now) -> None:
        scheduler = AutosaveScheduler(_make_session(draft_document, memory_store, fixed_now), 30)

        assert asyncio.run(scheduler.tick()) is True
        assert memory_store.get("doc-1") is not None

    def test_tick_skips_clean_document(self, draft_document, memory_store, fixed_now) -> None:
        session = _make_session(draft_document, memory_store, fixed_now)
        session.save_draft()
        memory_store.put = MagicMock()  # type: ignore[method-assign]

        assert asyncio.run(AutosaveScheduler(session, 30).tick()) is False
        memory_store.put.assert_not_called()

    def test_tick_failure_is_silent(self, draft_document, memory_store, fixed_now) -> None:
        session = _make_session(draft_document, memory_store, fixed_now)
        memory_store.set_available(False)

        assert asyncio.run(AutosaveScheduler(session, 30).tick()) is False
        assert session.is_dirty is True

    def test_tick_does_nothing_after_close(self, draft_document, memory_store, fixed_now) -> None:
        session = _make_session(draft_document, memory_store, fixed_now)
        session.close(force=True)

        assert asyncio.run(AutosaveScheduler(session, 30).tick()) is False
        assert memory_store.get("doc-1") is None


class TestRun:
    def test_run_stops_after_max_ticks(self, draft_document, memory_store, fixed_now) -> None:
        session = _make_session(draft_document, memory_store, fixed_now)
        scheduler = AutosaveScheduler(session, 0)

        asyncio.run(scheduler.run(max_ticks=2))

        assert session.is_dirty is False
        assert memory_store.get("doc-1") is not None

    def test_stop_ends_loop_without_saving(self, draft_document, memory_store, fixed_now) -> None:
        session = _make_session(draft_document, memory_store, fixed_now)
        scheduler = AutosaveScheduler(session, 60)

        async def scenario() -> None:
            task = asyncio.create_task(scheduler.run())
            await asyncio.sleep(0)
            scheduler.stop()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())

        assert memory_store.get("doc-1") is None

    def test_edits_between_ticks_are_saved(self, draft_document, memory_store, fixed_now) -> None:
        session = _make_session(draft_document, memory_store, fixed_now)
        scheduler = AutosaveScheduler(session, 0.01)

        async def scenario() -> None:
            task = asyncio.create_task(scheduler.run(max_ticks=3))
            await asyncio.sleep(0)
            session.edit_field("narrativeSummary", "Typed during autosave")
            await task

        asyncio.run(scenario())

        stored = memory_store.get("doc-1")
        assert stored is not None
        assert stored.narrative_summary == "Typed during autosave"


class TestEditsDuringWrite:
    def test_edit_during_slow_write_stays_dirty(
        self, draft_document, memory_store, fixed_now
    ) -> None:
        session = _make_session(draft_document, memory_store, fixed_now)
        scheduler = AutosaveScheduler(session, 30)
        started = threading.Event()
        release = threading.Event()
        original_put = memory_store.put

        def slow_put(document) -> None:
            started.set()
            release.wait(timeout=5)
            original_put(document)

        memory_store.put = slow_put  # type: ignore[method-assign]

        async def scenario() -> bool:
            task = asyncio.create_task(scheduler.tick())
            await asyncio.to_thread(started.wait, 5)
            session.edit_field("narrativeSummary", "Typed while saving")
            release.set()
            return await task

        assert asyncio.run(scenario()) is True
        assert session.is_dirty is True
        assert session.document.narrative_summary == "Typed while saving"
        stored = memory_store.get("doc-1")
        assert stored is not None
        assert stored.narrative_summary != "Typed while saving"

        memory_store.put = original_put  # type: ignore[method-assign]
        assert asyncio.run(scheduler.tick()) is True
        assert session.is_dirty is False
        assert memory_store.get("doc-1").narrative_summary == "Typed while saving"

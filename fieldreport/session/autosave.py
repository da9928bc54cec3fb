import asyncio

from fieldreport.logging.logger import Log
from fieldreport.session.editor import EditorSession


class AutosaveScheduler:
    """Interval loop: wait -> silent save if dirty -> repeat, until stopped or closed."""

    def __init__(self, session: EditorSession, interval_seconds: float) -> None:
        self._session = session
        self._interval = interval_seconds
        self._stop_event = asyncio.Event()

    async def tick(self) -> bool:
        """One autosave check; True if a save was written."""
        if self._session.is_closed:
            return False
        return await self._session.autosave()

    async def run(self, max_ticks: int | None = None) -> None:
        """Run until ``stop()`` or the session closes.

        If max_ticks is set, stop after that many ticks (for testing).
        """
        Log.info(f"Autosave started for document {self._session.local_id}")
        ticks = 0
        while not self._stop_event.is_set() and not self._session.is_closed:
            if max_ticks is not None and ticks >= max_ticks:
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            await self.tick()
            ticks += 1
        Log.info(f"Autosave stopped for document {self._session.local_id}")

    def stop(self) -> None:
        self._stop_event.set()

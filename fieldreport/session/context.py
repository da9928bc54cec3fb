from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from fieldreport.documents.ids import new_id, utc_now
from fieldreport.documents.models import ReportDocument, SyncState


@dataclass(frozen=True)
class SessionContext:
    identity: str
    display_name: str


class SessionProvider(Protocol):
    def current_session(self) -> SessionContext | None: ...


class StaticSessionProvider:
    """Session provider returning a fixed context; for development and tests."""

    def __init__(self, context: SessionContext | None) -> None:
        self._context = context

    def current_session(self) -> SessionContext | None:
        return self._context


def new_document(
    context: SessionContext,
    now: datetime | None = None,
    local_id: str | None = None,
) -> ReportDocument:
    """Create an empty DRAFT authored by ``context``.

    The author is captured here once and never re-read. The new document is
    dirty because nothing has been stored for it yet.
    """
    created_at = now or utc_now()
    document = ReportDocument(
        local_id=local_id or new_id(),
        author_identity=context.identity,
        author_display_name=context.display_name,
        created_at=created_at,
        updated_at=created_at,
    )
    return replace(document, sync_state=SyncState(is_dirty=True))

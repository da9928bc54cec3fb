from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from fieldreport.documents.models import ReportDocument
from fieldreport.export.artifacts import ArtifactBundle
from fieldreport.remote.base import RemoteAck


@dataclass(slots=True)
class CommitContext:
    document: ReportDocument
    now: datetime
    bundle: ArtifactBundle | None = None
    acks: list[RemoteAck] = field(default_factory=list)
    persisted: bool = False


class CommitStep(ABC):
    stage: ClassVar[str]
    status: ClassVar[str | None] = None

    def skip(self, context: CommitContext) -> bool:
        return False

    @abstractmethod
    def run(self, context: CommitContext) -> CommitContext:
        raise NotImplementedError

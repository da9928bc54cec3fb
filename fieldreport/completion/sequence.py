"""DRAFT to COMPLETED commit saga.

Steps run strictly in order and each one's effect is kept even if a later step
fails. Only the ID assignment is safe to repeat: it is skipped once an ID
exists. Failures after the local save leave a document that is completed but
not exported; ``retry_export`` re-runs only the export steps for it.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from fieldreport.completion.context import CommitContext, CommitStep
from fieldreport.completion.steps import (
    AssignSequenceIdStep,
    GenerateArtifactsStep,
    MarkCompletedStep,
    PersistLocalStep,
    SanitizeStep,
    UploadArtifactsStep,
)
from fieldreport.documents.exceptions import LifecycleError
from fieldreport.documents.ids import utc_now
from fieldreport.documents.models import AuditAction, ReportDocument
from fieldreport.errors import FieldReportError
from fieldreport.export.artifacts import ArtifactBuilder
from fieldreport.export.publisher import ArtifactPublisher
from fieldreport.logging.logger import Log
from fieldreport.remote.base import BaseRemoteStorage
from fieldreport.store.audit import AuditRecorder
from fieldreport.store.base import BaseDocumentStore

DONE_STATUS = "Done!"
EXPORT_STAGES = frozenset({"generate", "upload"})

ProgressCallback = Callable[[str], None]


@dataclass(frozen=True)
class CompletionOutcome:
    """Terminal result of a completion or export retry.

    ``document`` is the furthest value the run produced; on failure callers
    infer how far it got from its lifecycle state and report ID.
    """

    ok: bool
    message: str
    document: ReportDocument
    stage: str | None = None


class CommitSequence:
    def __init__(self, steps: Sequence[CommitStep]) -> None:
        self._steps = list(steps)

    def complete(
        self,
        document: ReportDocument,
        audit: AuditRecorder | None = None,
        progress: ProgressCallback | None = None,
        now: datetime | None = None,
    ) -> CompletionOutcome:
        Log.info(f"Completing document {document.local_id}")
        outcome = self._run(self._steps, document, progress, now)
        if audit is not None:
            self._audit(audit, outcome, AuditAction.COMPLETE)
        return outcome

    def retry_export(
        self,
        document: ReportDocument,
        audit: AuditRecorder | None = None,
        progress: ProgressCallback | None = None,
        now: datetime | None = None,
    ) -> CompletionOutcome:
        """Re-run artifact generation and upload for an already completed document.

        Raises:
            LifecycleError: if the document is still a draft.
        """
        if not document.is_completed:
            raise LifecycleError(
                f"Document {document.local_id} is not completed; complete it instead"
            )
        Log.info(f"Retrying export of document {document.local_id}")
        steps = [s for s in self._steps if s.stage in EXPORT_STAGES]
        outcome = self._run(steps, document, progress, now)
        if audit is not None:
            self._audit(audit, outcome, AuditAction.RETRY_UPLOAD)
        return outcome

    def _run(
        self,
        steps: Sequence[CommitStep],
        document: ReportDocument,
        progress: ProgressCallback | None,
        now: datetime | None,
    ) -> CompletionOutcome:
        report = progress or (lambda _status: None)
        context = CommitContext(document=document, now=now or utc_now())
        for step in steps:
            if step.skip(context):
                Log.debug(f"Skipping step {step.stage} for document {document.local_id}")
                continue
            if step.status:
                report(step.status)
            try:
                context = step.run(context)
            except FieldReportError as exc:
                Log.error(
                    f"Completion of document {document.local_id} failed at {step.stage}: {exc}"
                )
                message = _failure_message(step.stage, exc)
                report(f"Error: {message}")
                return CompletionOutcome(
                    ok=False, message=message, document=context.document, stage=step.stage
                )
        report(DONE_STATUS)
        return CompletionOutcome(ok=True, message=DONE_STATUS, document=context.document)

    @staticmethod
    def _audit(
        audit: AuditRecorder, outcome: CompletionOutcome, success_kind: AuditAction
    ) -> None:
        document = outcome.document
        if outcome.ok:
            audit.record(
                success_kind,
                document.local_id,
                field_path="lifecycleState",
                new_value=document.lifecycle_state,
                reportId=document.remote_sequence_id,
            )
        else:
            audit.record(
                AuditAction.ERROR,
                document.local_id,
                stage=outcome.stage,
                message=outcome.message,
            )


def _failure_message(stage: str, exc: Exception) -> str:
    if stage in EXPORT_STAGES:
        return (
            f"{exc}. The report is completed and saved locally; "
            "only its export needs to be retried."
        )
    if stage == "persist":
        return f"Could not save the completed report locally: {exc}"
    return f"{exc}. Nothing was saved; completion can be retried."


def build_commit_sequence(
    store: BaseDocumentStore,
    remote: BaseRemoteStorage,
    builder: ArtifactBuilder,
    publisher: ArtifactPublisher,
) -> CommitSequence:
    return CommitSequence(
        [
            SanitizeStep(),
            AssignSequenceIdStep(remote),
            MarkCompletedStep(),
            PersistLocalStep(store),
            GenerateArtifactsStep(builder, store),
            UploadArtifactsStep(publisher),
        ]
    )

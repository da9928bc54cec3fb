import copy
from dataclasses import replace
from typing import Any, Protocol

from fieldreport.documents import mutator
from fieldreport.documents.exceptions import IssueNotFoundError, LifecycleError
from fieldreport.documents.models import Attachment, Issue, ListItem, PartLineItem, ReportDocument


class AttachmentTarget(Protocol):
    """Owner that ingestion placeholders are inserted into and written back to."""

    def insert_attachment(self, attachment: Attachment) -> None: ...

    def write_back_attachment(self, attachment: Attachment) -> bool: ...


class IssueEditor:
    """Sub-editor holding a private working copy of one issue.

    The parent document is never touched while the editor is open; ``save``
    folds the working copy into whatever the latest document value is, so edits
    made to other issues or document fields in the meantime survive.

    Attachment write-backs that arrive after the editor was saved go to
    ``fallback`` (normally the owning editor session).
    """

    def __init__(
        self,
        working_copy: Issue,
        is_new: bool,
        fallback: AttachmentTarget | None = None,
    ) -> None:
        self._working_copy = working_copy
        self._is_new = is_new
        self._fallback = fallback
        self._open = True
        self._opened_with = {a.attachment_id: a for a in working_copy.attachments}

    @classmethod
    def open_new(cls, fallback: AttachmentTarget | None = None) -> "IssueEditor":
        return cls(mutator.new_issue(), is_new=True, fallback=fallback)

    @classmethod
    def open_existing(
        cls,
        document: ReportDocument,
        issue_id: str,
        fallback: AttachmentTarget | None = None,
    ) -> "IssueEditor":
        """Deep-clone the stored issue into a new editor.

        Raises:
            IssueNotFoundError: if ``issue_id`` is not in ``document.issues``.
        """
        issue = document.find_issue(issue_id)
        if issue is None:
            raise IssueNotFoundError(
                f"Issue {issue_id} not found in document {document.local_id}"
            )
        return cls(copy.deepcopy(issue), is_new=False, fallback=fallback)

    @property
    def working_copy(self) -> Issue:
        return self._working_copy

    @property
    def issue_id(self) -> str:
        return self._working_copy.issue_id

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def is_open(self) -> bool:
        return self._open

    def edit(self, path: str, value: Any) -> Issue:
        self._require_open()
        self._working_copy = mutator.apply_issue_edit(self._working_copy, path, value)
        return self._working_copy

    def append_dictation(self, path: str, text: str) -> Issue:
        """Append transcribed text to one of the issue's text fields."""
        if not text.strip():
            return self._working_copy
        current = mutator.read_field(self._working_copy, path)
        return self.edit(path, mutator.append_text(current or "", text.strip()))

    def add_item(self, list_name: str, item: ListItem | PartLineItem) -> Issue:
        self._require_open()
        self._working_copy = mutator.add_list_item(self._working_copy, list_name, item)
        return self._working_copy

    def edit_item(self, list_name: str, item_id: str, **changes: Any) -> Issue:
        self._require_open()
        self._working_copy = mutator.edit_list_item(
            self._working_copy, list_name, item_id, **changes
        )
        return self._working_copy

    def remove_item(self, list_name: str, item_id: str) -> Issue:
        self._require_open()
        self._working_copy = mutator.remove_list_item(self._working_copy, list_name, item_id)
        return self._working_copy

    def insert_attachment(self, attachment: Attachment) -> None:
        self._require_open()
        self._working_copy = mutator.add_attachment(self._working_copy, attachment)

    def remove_attachment(self, attachment_id: str) -> Issue:
        self._require_open()
        self._working_copy = mutator.remove_attachment(self._working_copy, attachment_id)
        return self._working_copy

    def write_back_attachment(self, attachment: Attachment) -> bool:
        if self._open:
            if not mutator.has_attachment(self._working_copy, attachment.attachment_id):
                return False
            self._working_copy = mutator.replace_attachment(self._working_copy, attachment)
            return True
        if self._fallback is not None:
            return self._fallback.write_back_attachment(attachment)
        return False

    def save(self, document: ReportDocument) -> ReportDocument:
        """Merge the working copy into ``document`` and close the editor.

        Attachments left untouched since the editor opened take the value
        currently stored in ``document``, so uploads that finished while the
        editor was open are kept.
        """
        self._require_open()
        merged = mutator.merge_issue(document, self._with_latest_attachments(document))
        self._open = False
        self._is_new = False
        return merged

    def discard(self) -> None:
        self._open = False

    def _with_latest_attachments(self, document: ReportDocument) -> Issue:
        stored = document.find_issue(self.issue_id)
        if stored is None:
            return self._working_copy
        latest = {a.attachment_id: a for a in stored.attachments}
        attachments = [
            latest.get(a.attachment_id, a)
            if self._opened_with.get(a.attachment_id) == a
            else a
            for a in self._working_copy.attachments
        ]
        return replace(self._working_copy, attachments=attachments)

    def _require_open(self) -> None:
        if not self._open:
            raise LifecycleError(f"Issue editor for {self.issue_id} is closed")

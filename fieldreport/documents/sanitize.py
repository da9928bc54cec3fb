"""Repairs partial or legacy documents before they reach later processing."""

from dataclasses import replace
from typing import Any, TypeVar

from fieldreport.documents.models import (
    Customer,
    DesignSuggestion,
    Issue,
    IssueFlags,
    Machine,
    ReportDocument,
)

T = TypeVar("T")

_NESTED_OBJECT_KEYS = ("customer", "machine", "designSuggestion")
_DOCUMENT_COLLECTION_KEYS = (
    "attachments",
    "parts",
    "issues",
    "toolsBought",
    "toolsUsed",
    "newNameplates",
)
_ISSUE_COLLECTION_KEYS = ("attachments", "parts", "proposedFixes", "troubleshootingSteps")


def sanitize_document(document: ReportDocument) -> ReportDocument:
    """Fill absent nested objects and drop null collection entries, recursively."""
    return replace(
        document,
        customer=document.customer or Customer(),
        machine=document.machine or Machine(),
        design_suggestion=document.design_suggestion or DesignSuggestion(),
        service_types=[t for t in document.service_types or [] if t],
        attachments=_present(document.attachments),
        parts=_present(document.parts),
        issues=[_sanitize_issue(i) for i in _present(document.issues)],
        tools_bought=_present(document.tools_bought),
        tools_used=_present(document.tools_used),
        new_nameplates=_present(document.new_nameplates),
    )


def sanitize_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Same repair as ``sanitize_document`` but on the stored/interchange dict.

    Used when loading rows written by older builds, where nested objects may be
    missing or collections may contain nulls.
    """
    cleaned = dict(data)
    for key in _NESTED_OBJECT_KEYS:
        cleaned[key] = dict(cleaned.get(key) or {})
    cleaned["serviceTypes"] = [t for t in cleaned.get("serviceTypes") or [] if t]
    for key in _DOCUMENT_COLLECTION_KEYS:
        cleaned[key] = _present(cleaned.get(key))
    cleaned["issues"] = [_sanitize_issue_payload(i) for i in cleaned["issues"]]
    return cleaned


def _sanitize_issue(issue: Issue) -> Issue:
    return replace(
        issue,
        attachments=_present(issue.attachments),
        parts=_present(issue.parts),
        proposed_fixes=_present(issue.proposed_fixes),
        troubleshooting_steps=_present(issue.troubleshooting_steps),
        flags=issue.flags or IssueFlags(),
    )


def _sanitize_issue_payload(raw: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(raw)
    for key in _ISSUE_COLLECTION_KEYS:
        cleaned[key] = _present(cleaned.get(key))
    cleaned["flags"] = dict(cleaned.get("flags") or {})
    return cleaned


def _present(items: list[T] | None) -> list[T]:
    return [item for item in items or [] if item is not None]

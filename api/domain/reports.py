# SPDX-License-Identifier: Apache-2.0

"""
Report lifecycle domain logic.

This module contains pure functions for the report state machine: the
transition table, guards for each intent, submission and media validation,
and HAL response transformation. Nothing here touches the store.
"""

from typing import Callable, List, Dict, Any, Optional, Tuple
from pydantic import ValidationError as PydanticValidationError
from models.entities import Report, Media, HistoryEntry, UserContext
from models.enums import ReportStatus, ReportAction, MediaKind, ActorRole
from models.requests import SubmitReportRequest, MediaUpload, ALLOWED_IMAGE_TYPES, ALLOWED_VIDEO_TYPES
from .errors import ValidationError, AuthorizationError, NotFoundError, ConflictError


# Legal (status, intent) pairs and the status each one leads to
TRANSITIONS: Dict[Tuple[ReportStatus, ReportAction], ReportStatus] = {
    (ReportStatus.SUBMITTED, ReportAction.CLAIM): ReportStatus.IN_REVIEW,
    (ReportStatus.IN_REVIEW, ReportAction.CONCLUDE): ReportStatus.CONCLUDED,
    (ReportStatus.IN_REVIEW, ReportAction.DENY): ReportStatus.DENIED,
    (ReportStatus.CONCLUDED, ReportAction.CONTEST): ReportStatus.DENIED,
}

DEFAULT_MAX_MEDIA_FILES = 10

# Orders a report's history for presentation, most recent first
HistoryOrder = Callable[[Report], List[HistoryEntry]]


def next_status(current: ReportStatus, action: ReportAction) -> ReportStatus:
    """
    Resolve the status an intent leads to from the current status.

    Args:
        current: Current report status
        action: Intent being applied

    Returns:
        Status after the transition

    Raises:
        ConflictError: if the transition is not legal from ``current``
    """
    current = ReportStatus(current)
    action = ReportAction(action)
    target = TRANSITIONS.get((current, action))
    if target is None:
        if action == ReportAction.CLAIM:
            raise ConflictError("Report already claimed or resolved")
        raise ConflictError(
            f"Cannot {action.value} a report in status {current.value}"
        )
    return target


def require_text(value: Optional[str], label: str) -> str:
    """Return ``value`` stripped, or fail if it is missing or blank."""
    if value is None or not str(value).strip():
        raise ValidationError(
            f"{label} is required",
            details=[{"field": label, "message": "must not be empty"}]
        )
    return str(value).strip()


def guard_transition(report: Report, action: ReportAction, actor_id: int) -> ReportStatus:
    """
    Check actor scope and current status for a report intent.

    Organization intents on a report assigned elsewhere are refused before the
    status is considered; contests by anyone but the creator are reported as
    not found.

    Returns:
        Status after the transition
    """
    action = ReportAction(action)
    if action in (ReportAction.CONCLUDE, ReportAction.DENY):
        if report.assigned_organization_id is not None and report.assigned_organization_id != actor_id:
            raise AuthorizationError("Only the assigned organization can resolve this report")
    elif action == ReportAction.CONTEST:
        if report.creator_id != actor_id:
            raise NotFoundError(f"Report {report.id} not found")
    return next_status(report.status, action)


def transition_condition(action: ReportAction, actor_id: int) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Build the compare-and-set condition for an intent.

    Returns:
        (expected, changes) where ``expected`` must still hold in the store at
        write time and ``changes`` is applied together with the history entry.
    """
    action = ReportAction(action)
    if action == ReportAction.CLAIM:
        expected = {"status": ReportStatus.SUBMITTED.value, "assigned_organization_id": None}
        changes = {"status": ReportStatus.IN_REVIEW.value, "assigned_organization_id": actor_id}
    elif action == ReportAction.CONCLUDE:
        expected = {"status": ReportStatus.IN_REVIEW.value, "assigned_organization_id": actor_id}
        changes = {"status": ReportStatus.CONCLUDED.value}
    elif action == ReportAction.DENY:
        expected = {"status": ReportStatus.IN_REVIEW.value, "assigned_organization_id": actor_id}
        changes = {"status": ReportStatus.DENIED.value}
    else:
        expected = {"status": ReportStatus.CONCLUDED.value, "creator_id": actor_id}
        changes = {"status": ReportStatus.DENIED.value}
    return expected, changes


def guard_deletion(report: Report, actor_id: int) -> None:
    """Only the creator may delete, and only while the report is submitted."""
    if report.creator_id != actor_id:
        raise NotFoundError(f"Report {report.id} not found")
    if report.status != ReportStatus.SUBMITTED:
        raise ConflictError("Only submitted reports can be deleted")


def media_kind(content_type: str) -> MediaKind:
    """Derive the media kind from a declared content type."""
    return MediaKind.IMAGE if (content_type or "").lower().startswith("image/") else MediaKind.VIDEO


def _pydantic_details(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in error["loc"]) or "body", "message": error["msg"]}
        for error in exc.errors()
    ]


def validate_media_types(content_types: List[Optional[str]], max_files: int = DEFAULT_MAX_MEDIA_FILES) -> None:
    """
    Check attachment count and declared types before anything is written.

    Raises:
        ValidationError: too many files, or a type outside the allow-list
    """
    if len(content_types) > max_files:
        raise ValidationError(f"At most {max_files} media files are allowed per report")

    allowed = ALLOWED_IMAGE_TYPES + ALLOWED_VIDEO_TYPES
    rejected = [
        {"field": f"media.{index}.content_type", "message": f"Unsupported content type: {content_type}"}
        for index, content_type in enumerate(content_types)
        if (content_type or "").lower() not in allowed
    ]
    if rejected:
        raise ValidationError("Invalid media file", details=rejected)


def validate_media(uploads: List[Dict[str, Any]], max_files: int = DEFAULT_MAX_MEDIA_FILES) -> List[Media]:
    """
    Validate uploaded file descriptors and turn them into Media records.

    Args:
        uploads: Dicts with ``file_ref`` and ``content_type``
        max_files: Maximum attachments per report

    Returns:
        Media records without identifiers
    """
    uploads = uploads or []
    validate_media_types([upload.get("content_type") for upload in uploads], max_files)

    media = []
    for upload in uploads:
        try:
            parsed = MediaUpload.model_validate(upload)
        except PydanticValidationError as e:
            raise ValidationError("Invalid media file", details=_pydantic_details(e))
        media.append(Media(
            file_ref=parsed.file_ref,
            content_type=parsed.content_type,
            kind=media_kind(parsed.content_type)
        ))
    return media


def build_submission(
    fields: Dict[str, Any],
    uploads: List[Dict[str, Any]],
    creator_id: int,
    max_files: int = DEFAULT_MAX_MEDIA_FILES
) -> Report:
    """
    Validate description fields and media, producing an unsaved report.

    Raises:
        ValidationError: on any missing or malformed field or media file
    """
    try:
        request = SubmitReportRequest.model_validate(fields or {})
    except PydanticValidationError as e:
        raise ValidationError("Invalid report submission", details=_pydantic_details(e))

    return Report(
        description=request.description,
        category=request.category,
        location=request.location,
        latitude=request.latitude,
        longitude=request.longitude,
        status=ReportStatus.SUBMITTED,
        creator_id=creator_id,
        media=validate_media(uploads, max_files)
    )


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def build_history_entry_view(entry: HistoryEntry) -> Dict[str, Any]:
    """Serialize one history entry."""
    return {
        "id": entry.id,
        "priorStatus": entry.prior_status,
        "newStatus": entry.new_status,
        "observation": entry.observation,
        "actorId": entry.actor_id,
        "timestamp": _iso(entry.timestamp)
    }


def build_media_view(media: Media) -> Dict[str, Any]:
    """Serialize one media attachment."""
    return {
        "id": media.id,
        "fileRef": media.file_ref,
        "contentType": media.content_type,
        "kind": media.kind,
        "uploadedAt": _iso(media.uploaded_at)
    }


def build_report_hal_response(
    report: Report,
    user_context: Optional[UserContext],
    base_url: str,
    display_order: Optional[HistoryOrder] = None
) -> Dict[str, Any]:
    """
    Build HAL response for a report with affordance links.

    Args:
        report: Report entity
        user_context: Caller, used for status and role dependent links
        base_url: Base URL for link generation
        display_order: When given, embed media and the full history in this
            order; otherwise only the latest history entry

    Returns:
        HAL-formatted response dictionary
    """
    response = {
        "id": report.id,
        "code": report.display_code,
        "description": report.description,
        "category": report.category,
        "location": report.location,
        "latitude": report.latitude,
        "longitude": report.longitude,
        "status": report.status,
        "creatorId": report.creator_id,
        "assignedOrganizationId": report.assigned_organization_id,
        "createdAt": _iso(report.created_at),
        "_links": {
            "self": {"href": f"{base_url}/api/reports/{report.id}"}
        }
    }

    if display_order is not None:
        response["media"] = [build_media_view(m) for m in report.media]
        response["history"] = [build_history_entry_view(entry) for entry in display_order(report)]
    else:
        latest = report.latest_history()
        response["latestHistory"] = build_history_entry_view(latest) if latest else None

    if user_context is None:
        return response

    links = response["_links"]
    actor_id = user_context.actor_id
    is_org = user_context.role == ActorRole.ORGANIZATION

    # Organization affordances
    if is_org and report.is_available():
        links["claim"] = {
            "href": f"{base_url}/api/reports/{report.id}/claim",
            "method": "PUT"
        }
    if (is_org and report.status == ReportStatus.IN_REVIEW and
            report.assigned_organization_id == actor_id):
        links["conclude"] = {
            "href": f"{base_url}/api/reports/{report.id}/conclude",
            "method": "PUT",
            "type": "application/json"
        }
        links["deny"] = {
            "href": f"{base_url}/api/reports/{report.id}/deny",
            "method": "PUT",
            "type": "application/json"
        }
    if is_org and (report.is_available() or report.assigned_organization_id == actor_id):
        links["report-user"] = {
            "href": f"{base_url}/api/reports/{report.id}/report-user",
            "method": "POST",
            "type": "application/json"
        }

    # Creator affordances
    if report.creator_id == actor_id:
        if report.status == ReportStatus.SUBMITTED:
            links["delete"] = {
                "href": f"{base_url}/api/reports/{report.id}",
                "method": "DELETE"
            }
        if report.status == ReportStatus.CONCLUDED:
            links["contest"] = {
                "href": f"{base_url}/api/reports/{report.id}/contest",
                "method": "POST",
                "type": "application/json"
            }

    return response


def build_report_collection_hal_response(
    reports: List[Report],
    user_context: Optional[UserContext],
    base_url: str,
    self_path: str
) -> Dict[str, Any]:
    """
    Build HAL collection response for reports, each with its latest history entry.
    """
    return {
        "total": len(reports),
        "_embedded": {
            "reports": [
                build_report_hal_response(report, user_context, base_url)
                for report in reports
            ]
        },
        "_links": {
            "self": {"href": f"{base_url}{self_path}"}
        }
    }


def build_map_point(report: Report, display_order: HistoryOrder) -> Dict[str, Any]:
    """Public projection of a concluded report for the map feed."""
    concluded_at = None
    for entry in display_order(report):
        if entry.new_status == ReportStatus.CONCLUDED:
            concluded_at = entry.timestamp
            break
    return {
        "id": report.id,
        "code": report.display_code,
        "category": report.category,
        "location": report.location,
        "latitude": report.latitude,
        "longitude": report.longitude,
        "concludedAt": _iso(concluded_at)
    }

# SPDX-License-Identifier: Apache-2.0

"""
Administrator queue transformation.

Pending organizations, reported users and denied reports are presented as one
list of uniform items so the administrator can work through them in order.
"""

from typing import Any, Dict, List, Optional
from models.entities import Actor, Report, HistoryEntry, format_display_code
from models.enums import ReportStatus
from .reports import HistoryOrder, build_history_entry_view

REPORTED_USER_HISTORY_LIMIT = 5


def _date(value) -> Optional[str]:
    return value.date().isoformat() if value else None


def denial_entries(report: Report, display_order: HistoryOrder) -> List[HistoryEntry]:
    """History entries that moved the report to denied, most recent first."""
    return [
        entry for entry in display_order(report)
        if entry.new_status == ReportStatus.DENIED
    ]


def build_pending_organization_item(org: Actor) -> Dict[str, Any]:
    return {
        "id": f"org_{org.id}",
        "type": "pending_organization",
        "code": format_display_code("ONG", org.id),
        "includedOn": _date(org.created_at),
        "queueStatus": "new",
        "returnedOn": None,
        "feedback": None,
        "data": {
            "id": org.id,
            "name": org.full_name,
            "email": org.email,
            "cnpj": org.cnpj,
            "phone": org.phone,
            "address": org.address,
            "createdAt": org.created_at.isoformat()
        }
    }


def build_reported_user_item(
    user: Actor,
    reports: List[Report],
    display_order: HistoryOrder
) -> Dict[str, Any]:
    """Reported user with each of their reports and its latest history entries."""
    return {
        "id": f"user_{user.id}",
        "type": "reported_user",
        "code": format_display_code("USR", user.id),
        "includedOn": _date(user.created_at),
        "queueStatus": "under_review",
        "returnedOn": None,
        "feedback": None,
        "data": {
            "id": user.id,
            "name": user.full_name,
            "email": user.email,
            "cpf": user.cpf,
            "phone": user.phone,
            "address": user.address,
            "createdAt": user.created_at.isoformat(),
            "banReason": user.ban_reason,
            "bannedBy": user.banned_by,
            "bannedAt": user.banned_at.isoformat() if user.banned_at else None,
            "reports": [
                {
                    "id": report.id,
                    "code": report.display_code,
                    "description": report.description,
                    "createdAt": report.created_at.isoformat(),
                    "status": report.status,
                    "history": [
                        build_history_entry_view(entry)
                        for entry in display_order(report)[:REPORTED_USER_HISTORY_LIMIT]
                    ]
                }
                for report in reports
            ]
        }
    }


def build_denied_report_item(
    report: Report,
    creator: Optional[Actor],
    display_order: HistoryOrder
) -> Dict[str, Any]:
    denials = denial_entries(report, display_order)
    denial = denials[0] if denials else None
    return {
        "id": f"den_{report.id}",
        "type": "denied_report",
        "code": format_display_code("DEN", report.id),
        "includedOn": _date(report.created_at),
        "queueStatus": "denied",
        "returnedOn": _date(denial.timestamp) if denial else None,
        "feedback": denial.observation if denial else None,
        "data": {
            "id": report.id,
            "description": report.description,
            "category": report.category,
            "createdAt": report.created_at.isoformat(),
            "location": report.location,
            "creator": {
                "id": creator.id,
                "name": creator.full_name,
                "email": creator.email
            } if creator else None,
            "denial": build_history_entry_view(denial) if denial else None
        }
    }


def build_denied_report_detail(
    report: Report,
    creator: Optional[Actor],
    display_order: HistoryOrder
) -> Dict[str, Any]:
    """Denied report with every denial entry, most recent first."""
    return {
        "id": report.id,
        "code": report.display_code,
        "description": report.description,
        "category": report.category,
        "location": report.location,
        "latitude": report.latitude,
        "longitude": report.longitude,
        "status": report.status,
        "createdAt": report.created_at.isoformat(),
        "creator": {
            "id": creator.id,
            "name": creator.full_name,
            "email": creator.email
        } if creator else None,
        "history": [build_history_entry_view(entry) for entry in denial_entries(report, display_order)]
    }

# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS responses with conditional affordance links and
RFC 7807 problem documents.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin

from models.entities import Actor, Report, UserContext
from models.enums import ActorRole
from models.responses import HalLink
from domain.errors import DomainError
from domain.reports import (
    build_map_point,
    build_report_collection_hal_response,
    build_report_hal_response
)
from .audit import AuditTrail

PROBLEM_BASE_URL = "https://api.report-abandono.org/problems"


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title
        )

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "PUT",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        return self.build_link(
            f"{resource_path}/{action}",
            method=method,
            content_type="application/json",
            title=title or action.replace('-', ' ').title()
        )


def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
    return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        """Attach HAL links to a resource payload."""
        response = dict(data)
        response['_links'] = _dump_links(links)
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        rel: str = "items"
    ) -> Dict[str, Any]:
        """Build a HAL collection response."""
        return {
            'total': len(items),
            '_links': _dump_links({'self': self.link_builder.build_link(collection_path)}),
            '_embedded': {rel: items}
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URL}/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link("/openapi/openapi.json", title="API schema")
        elif error_type in ("authentication-required", "token-expired"):
            links['login'] = self.link_builder.build_link(
                "/api/auth/login",
                method="POST",
                content_type="application/json",
                title="Login"
            )

        error_response['_links'] = _dump_links(links)
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    @property
    def base_url(self) -> str:
        return self.builder.base_url

    def format_report(self, report: Report, user_context: Optional[UserContext]) -> Dict[str, Any]:
        """Full report with media, history and the affordances open to the caller."""
        return build_report_hal_response(report, user_context, self.base_url, AuditTrail.display_order)

    def format_report_collection(
        self,
        reports: List[Report],
        user_context: Optional[UserContext],
        path: str
    ) -> Dict[str, Any]:
        """Report summaries, each with its latest history entry."""
        return build_report_collection_hal_response(reports, user_context, self.base_url, path)

    def format_map_feed(self, reports: List[Report]) -> Dict[str, Any]:
        """Public map points for concluded reports."""
        return self.builder.build_collection_response(
            [build_map_point(report, AuditTrail.display_order) for report in reports],
            "/api/reports/concluded",
            rel="reports"
        )

    def format_profile(self, actor: Actor) -> Dict[str, Any]:
        """Own profile with self-service links."""
        links = {
            'self': self.builder.link_builder.build_link("/api/users/me"),
            'update': self.builder.link_builder.build_link(
                "/api/users/me", method="PUT", content_type="application/json", title="Update profile"
            ),
            'delete': self.builder.link_builder.build_link(
                "/api/users/me", method="DELETE", title="Delete account"
            ),
            'reports': self.builder.link_builder.build_link("/api/reports/me", title="Own reports")
        }
        return self.builder.build_resource_response(actor.public_profile(), links)

    def format_account(self, actor: Actor) -> Dict[str, Any]:
        """Account as seen by an administrator, with the governance actions that apply."""
        link_builder = self.builder.link_builder
        data = actor.public_profile()
        data.update({
            "banReason": actor.ban_reason,
            "bannedBy": actor.banned_by,
            "bannedAt": actor.banned_at.isoformat() if actor.banned_at else None,
            "rejectionReason": actor.rejection_reason
        })

        links = {}
        if actor.role == ActorRole.ORGANIZATION:
            path = f"/api/admin/organizations/{actor.id}"
            links['approve'] = link_builder.build_action_link(path, "approve")
            links['reject'] = link_builder.build_action_link(path, "reject")
        elif actor.role == ActorRole.INDIVIDUAL and actor.is_banned():
            path = f"/api/admin/users/{actor.id}"
            links['confirm-ban'] = link_builder.build_action_link(path, "confirm-ban")
            links['revert-ban'] = link_builder.build_action_link(path, "revert-ban")
        return self.builder.build_resource_response(data, links)

    def format_queue(self, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Administrator queue."""
        return self.builder.build_collection_response(items, "/api/admin/requests", rel="requests")

    def format_error(self, error: DomainError, instance: str) -> Dict[str, Any]:
        """Render a domain error as a problem document."""
        return self.builder.build_error_response(
            error.error_type,
            error.title,
            error.status_code,
            error.message,
            instance,
            error.details
        )


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)

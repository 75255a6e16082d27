# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Beneficiary portal resources carry navigation and affordance links; errors
are RFC 7807 problem documents with helpful links.
"""

from typing import Dict, List, Any, Optional

from ..models.enums import CredentialMode
from ..models.responses import HalLink

PROBLEM_BASE_URL = "https://api.tawzi3.org/problems"
PORTAL_PATH = "/api/me"


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link; paths are appended to the base URL."""
        return HalLink(
            href=f"{self.base_url}/{path.lstrip('/')}",
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_action_link(
        self,
        path: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build a JSON action link."""
        return self.build_link(path, method=method, content_type="application/json", title=title)


class PortalAffordanceBuilder:
    """Navigation and action links available to a signed-in beneficiary."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_navigation(self) -> Dict[str, HalLink]:
        """Links shared by every portal resource."""
        return {
            'profile': self.link_builder.build_link(PORTAL_PATH, title="Profile"),
            'parcels': self.link_builder.build_link(f"{PORTAL_PATH}/parcels", title="Parcels"),
            'complaints': self.link_builder.build_link(f"{PORTAL_PATH}/complaints", title="Complaints"),
            'qr': self.link_builder.build_link(f"{PORTAL_PATH}/qr", title="QR credential"),
            'logout': self.link_builder.build_action_link("/api/auth/logout", title="Logout")
        }

    def build_profile_affordances(self, credential_mode: str) -> Dict[str, HalLink]:
        """Profile links; the password change is titled after the credential it replaces."""
        links = {'self': self.link_builder.build_self_link(PORTAL_PATH)}
        links.update(self.build_navigation())

        if credential_mode == CredentialMode.PASSWORD.value:
            verify_title = "Verify current password"
        else:
            verify_title = "Verify registered phone"

        links['verify_credential'] = self.link_builder.build_action_link(
            f"{PORTAL_PATH}/password/verify", title=verify_title
        )
        links['change_password'] = self.link_builder.build_action_link(
            f"{PORTAL_PATH}/password", method="PUT", title="Change password"
        )
        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = PortalAffordanceBuilder(base_url)

    @staticmethod
    def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Any]:
        return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}

    def build_resource_response(
        self,
        data: Dict[str, Any],
        links: Dict[str, HalLink]
    ) -> Dict[str, Any]:
        """Build a HAL resource response."""
        response = dict(data)
        response['_links'] = self._dump_links(links)
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        embedded_name: str = 'items'
    ) -> Dict[str, Any]:
        """Build an unpaginated HAL collection response."""
        links = {'self': self.link_builder.build_self_link(collection_path)}
        links.update({
            rel: link for rel, link in self.affordance_builder.build_navigation().items()
            if link.href != links['self'].href
        })

        return {
            'total': len(items),
            '_links': self._dump_links(links),
            '_embedded': {
                embedded_name: items
            }
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
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )
        elif error_type in ("authentication-required", "invalid-credentials"):
            links['login'] = self.link_builder.build_action_link(
                "/api/auth/login",
                title="Login"
            )
        elif error_type == "service-unavailable":
            links['health'] = self.link_builder.build_link(
                "/api/healthz",
                title="Service health"
            )

        error_response['_links'] = self._dump_links(links)
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_profile(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        """Format the beneficiary profile with HAL links."""
        links = self.builder.affordance_builder.build_profile_affordances(
            profile.get('credential_mode', '')
        )
        return self.builder.build_resource_response(profile, links)

    def format_parcel_collection(self, parcels: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Format the resolved parcel list."""
        return self.builder.build_collection_response(parcels, f"{PORTAL_PATH}/parcels", 'parcels')

    def format_complaint(self, complaint: Dict[str, Any]) -> Dict[str, Any]:
        """Format a single complaint."""
        links = {
            'collection': self.builder.link_builder.build_link(
                f"{PORTAL_PATH}/complaints", title="Complaints"
            ),
            'profile': self.builder.link_builder.build_link(PORTAL_PATH, title="Profile")
        }
        return self.builder.build_resource_response(complaint, links)

    def format_complaint_collection(self, complaints: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Format the beneficiary's complaints."""
        response = self.builder.build_collection_response(
            [self.format_complaint(complaint) for complaint in complaints],
            f"{PORTAL_PATH}/complaints",
            'complaints'
        )
        response['_links']['create'] = self.builder.link_builder.build_action_link(
            f"{PORTAL_PATH}/complaints", title="File a complaint"
        ).model_dump(exclude_none=True)
        return response

    def format_qr_credential(self, credential: Dict[str, Any]) -> Dict[str, Any]:
        """Format the QR credential with a link to the raw image."""
        links = {
            'self': self.builder.link_builder.build_self_link(f"{PORTAL_PATH}/qr"),
            'image': self.builder.link_builder.build_link(
                f"{PORTAL_PATH}/qr.png", content_type="image/png", title="QR image"
            ),
            'profile': self.builder.link_builder.build_link(PORTAL_PATH, title="Profile")
        }
        return self.builder.build_resource_response(credential, links)

    def format_session(self, tokens: Dict[str, Any], profile: Dict[str, Any]) -> Dict[str, Any]:
        """Format a login response: tokens plus the embedded profile."""
        response = dict(tokens)
        response['_links'] = self.builder._dump_links(
            self.builder.affordance_builder.build_navigation()
        )
        response['_embedded'] = {'profile': self.format_profile(profile)}
        return response

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_authentication_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format an authentication error response."""
        return self.builder.build_error_response(
            "authentication-required",
            "Authentication Required",
            401,
            detail,
            instance
        )

    def format_invalid_credentials_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format a login rejection (unknown national id or credential mismatch)."""
        return self.builder.build_error_response(
            "invalid-credentials",
            "Invalid Credentials",
            401,
            detail,
            instance
        )

    def format_not_found_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format a not found error response."""
        return self.builder.build_error_response(
            "resource-not-found",
            "Resource Not Found",
            404,
            detail,
            instance
        )

    def format_service_unavailable_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format a record store failure response."""
        return self.builder.build_error_response(
            "service-unavailable",
            "Service Unavailable",
            503,
            detail,
            instance
        )

    def format_server_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format a server error response."""
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)

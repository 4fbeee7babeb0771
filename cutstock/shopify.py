"""
Minimal Shopify GraphQL client.

Two endpoints are used:
- Admin API       — creates and deletes variants (X-Shopify-Access-Token)
- Storefront API  — owns the buyer's cart (X-Shopify-Storefront-Access-Token)

Every call has a bounded timeout. The client never retries; callers decide
whether a call is safe to repeat.
"""

import json
import logging
import socket
import urllib.error
import urllib.request
from typing import Optional

from .config import settings
from .errors import TransportError

logger = logging.getLogger(__name__)


class ShopifyGraphQLClient:
    """POSTs GraphQL documents to one Shopify endpoint."""

    def __init__(self, endpoint: str, headers: dict, timeout: float = 15.0, name: str = "shopify"):
        self.endpoint = endpoint
        self.headers = headers
        self.timeout = timeout
        self.name = name

    @classmethod
    def admin(cls) -> "ShopifyGraphQLClient":
        return cls(
            endpoint="https://%s/admin/api/%s/graphql.json" % (
                settings.PUBLIC_STORE_DOMAIN, settings.SHOPIFY_API_VERSION),
            headers={"X-Shopify-Access-Token": settings.SHOPIFY_ADMIN_ACCESS_TOKEN},
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
            name="admin",
        )

    @classmethod
    def storefront(cls) -> "ShopifyGraphQLClient":
        return cls(
            endpoint="https://%s/api/%s/graphql.json" % (
                settings.PUBLIC_STORE_DOMAIN, settings.SHOPIFY_API_VERSION),
            headers={"X-Shopify-Storefront-Access-Token": settings.SHOPIFY_STOREFRONT_ACCESS_TOKEN},
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
            name="storefront",
        )

    def is_configured(self) -> bool:
        return bool(settings.PUBLIC_STORE_DOMAIN) and all(self.headers.values())

    def execute(self, query: str, variables: Optional[dict] = None) -> dict:
        """
        Run one GraphQL operation and return its `data` payload.
        Raises TransportError on network failure, timeout, non-2xx status,
        unparseable body or top-level GraphQL errors.
        """
        if not self.is_configured():
            raise TransportError(f"Shopify {self.name} API is not configured", request_sent=False)

        payload = json.dumps({"query": query, "variables": variables or {}}).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(self.headers)

        req = urllib.request.Request(
            self.endpoint,
            data=payload,
            headers=headers,
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                status = response.status
                body = response.read()
        except urllib.error.HTTPError as e:
            raise TransportError(
                f"Shopify {self.name} API request failed: {e.code}", status_code=e.code)
        except (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError) as e:
            raise TransportError(f"Shopify {self.name} API unreachable: {e}",
                                 request_sent=not _failed_before_sending(e))

        if status < 200 or status >= 300:
            raise TransportError(
                f"Shopify {self.name} API request failed: {status}", status_code=status)

        try:
            result = json.loads(body)
        except json.JSONDecodeError:
            raise TransportError(f"Shopify {self.name} API returned a non-JSON body")

        if result.get("errors"):
            messages = "; ".join(str(e.get("message", e)) for e in result["errors"])
            raise TransportError(f"Shopify {self.name} API GraphQL errors: {messages}")

        return result.get("data") or {}


def get_admin_client() -> ShopifyGraphQLClient:
    return ShopifyGraphQLClient.admin()


def get_storefront_client() -> ShopifyGraphQLClient:
    return ShopifyGraphQLClient.storefront()


def _failed_before_sending(error: Exception) -> bool:
    """True when the connection was never established, so the request cannot have been processed."""
    reason = getattr(error, "reason", error)
    return isinstance(reason, (ConnectionRefusedError, socket.gaierror))

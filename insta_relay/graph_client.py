from __future__ import annotations

import logging
from typing import Any

import httpx

from insta_relay.errors import NotLinkedError, UpstreamError

logger = logging.getLogger("insta-relay")

GRAPH_BASE = "https://graph.facebook.com"
MEDIA_FIELDS = "id,caption,media_type,media_url,permalink,thumbnail_url,timestamp"


def _error_from_response(response: httpx.Response) -> UpstreamError:
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or f"Request failed with status code {response.status_code}"
        return UpstreamError(str(message), code=error.get("code"))
    return UpstreamError(f"Request failed with status code {response.status_code}")


class GraphClient:
    """Calls the Facebook Graph API for token exchange and Instagram media."""

    def __init__(
        self,
        http_client: httpx.Client,
        app_id: str | None,
        app_secret: str | None,
        api_version: str = "v18.0",
        base_url: str = GRAPH_BASE,
    ) -> None:
        self.http_client = http_client
        self.app_id = app_id
        self.app_secret = app_secret
        self.api_version = api_version
        self.base_url = base_url.rstrip("/")

    def _request(self, method: str, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/{self.api_version}/{path.lstrip('/')}"
        try:
            response = self.http_client.request(method, url, params=params)
        except httpx.HTTPError as exc:
            logger.warning("graph_request_fail method=%s path=%s error=%s", method, path, exc)
            raise UpstreamError(str(exc) or exc.__class__.__name__) from exc
        if not response.is_success:
            error = _error_from_response(response)
            logger.warning(
                "graph_request_fail method=%s path=%s status=%s code=%s",
                method,
                path,
                response.status_code,
                error.code,
            )
            raise error
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError("Graph API returned a non-JSON response") from exc
        if not isinstance(body, dict):
            raise UpstreamError("Graph API returned an unexpected response")
        return body

    def exchange_token(self, short_lived_token: str) -> str:
        body = self._request(
            "GET",
            "oauth/access_token",
            {
                "grant_type": "fb_exchange_token",
                "client_id": self.app_id,
                "client_secret": self.app_secret,
                "fb_exchange_token": short_lived_token,
            },
        )
        token = body.get("access_token")
        if not token:
            raise UpstreamError("Token exchange response missing access_token")
        logger.info("token_exchange_success expires_in=%s", body.get("expires_in"))
        return str(token)

    def resolve_business_account(self, page_id: str, access_token: str) -> str:
        body = self._request(
            "GET",
            page_id,
            {"fields": "instagram_business_account", "access_token": access_token},
        )
        business_account = body.get("instagram_business_account")
        if not isinstance(business_account, dict) or not business_account.get("id"):
            raise NotLinkedError("No Instagram Business Account found for this Facebook Page")
        return str(business_account["id"])

    def fetch_profile(self, account_id: str, access_token: str) -> dict[str, Any]:
        body = self._request(
            "GET",
            account_id,
            {"fields": "username,profile_picture_url", "access_token": access_token},
        )
        return {
            "username": body.get("username"),
            "profile_picture_url": body.get("profile_picture_url"),
        }

    def count_media(self, account_id: str, access_token: str) -> int:
        # Graph has no total count; this pulls the whole collection.
        body = self._request(
            "GET",
            f"{account_id}/media",
            {"limit": 0, "access_token": access_token},
        )
        return len(body.get("data") or [])

    def fetch_cursor(self, account_id: str, access_token: str, offset: int) -> str | None:
        body = self._request(
            "GET",
            f"{account_id}/media",
            {"limit": offset, "access_token": access_token, "fields": "id"},
        )
        cursors = (body.get("paging") or {}).get("cursors") or {}
        return cursors.get("after")

    def fetch_media_page(
        self,
        account_id: str,
        access_token: str,
        limit: int,
        after: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "fields": MEDIA_FIELDS,
            "access_token": access_token,
            "limit": limit,
        }
        if after:
            params["after"] = after
        body = self._request("GET", f"{account_id}/media", params)
        cursors = (body.get("paging") or {}).get("cursors") or {}
        return {"items": body.get("data") or [], "next_cursor": cursors.get("after")}

    def create_media_container(
        self, account_id: str, access_token: str, image_url: str, caption: str
    ) -> str:
        body = self._request(
            "POST",
            f"{account_id}/media",
            {"image_url": image_url, "caption": caption, "access_token": access_token},
        )
        container_id = body.get("id")
        if not container_id:
            raise UpstreamError("Failed to create media container")
        return str(container_id)

    def publish_container(self, account_id: str, access_token: str, container_id: str) -> str | None:
        body = self._request(
            "POST",
            f"{account_id}/media_publish",
            {"creation_id": container_id, "access_token": access_token},
        )
        return body.get("id")

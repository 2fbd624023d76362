from __future__ import annotations

import logging
import math
import re
from typing import Any

from insta_relay.db import CredentialStore
from insta_relay.errors import NotFoundError, UpstreamError, ValidationError, classify_upstream_error
from insta_relay.graph_client import GraphClient

logger = logging.getLogger("insta-relay")

POSTS_PER_PAGE = 18

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_page(raw: Any) -> int:
    """Lenient page number: leading digits win, anything else is page 1."""
    if raw is None:
        return 1
    match = _LEADING_INT.match(str(raw))
    if not match:
        return 1
    page = int(match.group(1))
    return page if page > 0 else 1


def _require_account(store: CredentialStore, user_id: str) -> dict[str, Any]:
    account = store.get_account(user_id)
    if account is None:
        raise NotFoundError("Instagram account not found for this user")
    return account


def link_account(
    graph: GraphClient,
    store: CredentialStore,
    short_lived_token: str | None,
    user_id: str | None,
    facebook_page_id: str | None,
) -> dict[str, Any]:
    if not short_lived_token or not user_id or not facebook_page_id:
        raise ValidationError("Missing required parameters: shortLivedToken, userId, or facebookPageId")

    long_lived_token = graph.exchange_token(short_lived_token)
    instagram_account_id = graph.resolve_business_account(facebook_page_id, long_lived_token)
    row = store.upsert_account(user_id, instagram_account_id, facebook_page_id, long_lived_token)
    logger.info(
        "link_success user_id=%s instagram_account_id=%s facebook_page_id=%s",
        user_id,
        instagram_account_id,
        facebook_page_id,
    )
    return {"instagram_account_id": instagram_account_id, "data": row}


def list_posts(graph: GraphClient, store: CredentialStore, user_id: str, page: int = 1) -> dict[str, Any]:
    account = _require_account(store, user_id)
    account_id = account["instagram_account_id"]
    token = account["access_token"]

    profile = graph.fetch_profile(account_id, token)
    total_posts = graph.count_media(account_id, token)
    total_pages = math.ceil(total_posts / POSTS_PER_PAGE)

    after = None
    if page > 1:
        after = graph.fetch_cursor(account_id, token, (page - 1) * POSTS_PER_PAGE)

    media_page = graph.fetch_media_page(account_id, token, POSTS_PER_PAGE, after)
    return {
        "profile": profile,
        "posts": media_page["items"],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalPosts": total_posts,
            "hasNextPage": page < total_pages,
            "hasPreviousPage": page > 1,
            "limit": POSTS_PER_PAGE,
        },
    }


def publish_image(
    graph: GraphClient,
    store: CredentialStore,
    user_id: str | None,
    image_url: str | None,
    caption: str | None = None,
) -> dict[str, Any]:
    if not user_id or not image_url:
        raise ValidationError("Missing required parameters: userId or imageUrl")

    account = _require_account(store, user_id)
    account_id = account["instagram_account_id"]
    token = account["access_token"]
    try:
        container_id = graph.create_media_container(account_id, token, image_url, caption or "")
        post_id = graph.publish_container(account_id, token, container_id)
    except UpstreamError as exc:
        error = classify_upstream_error(exc)
        if error is exc:
            raise
        raise error from exc
    logger.info("publish_success user_id=%s container_id=%s post_id=%s", user_id, container_id, post_id)
    return {"post_id": post_id, "message": "Image successfully posted to Instagram"}

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from insta_relay.db import CredentialStore
from insta_relay.errors import InternalError, RelayError
from insta_relay.graph_client import GraphClient
from insta_relay.workflows import link_account, list_posts, parse_page, publish_image

logger = logging.getLogger("insta-relay")

router = APIRouter(prefix="/api/instagram", tags=["instagram"])


class SetupRequest(BaseModel):
    shortLivedToken: str | None = None
    userId: str | int | None = None
    facebookPageId: str | None = None


class UploadRequest(BaseModel):
    userId: str | int | None = None
    imageUrl: str | None = None
    caption: str | int | float | None = None


def _text(value: Any) -> str | None:
    """Front ends send numeric ids; falsy values stay missing."""
    return str(value) if value else None


def get_graph_client(request: Request) -> GraphClient:
    return request.app.state.graph_client


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def _run(event: str, label: str, call: Callable[[], dict[str, Any]]) -> dict[str, Any]:
    try:
        return call()
    except RelayError as exc:
        logger.warning("%s_fail error=%s details=%s", event, exc.label, exc.details)
        raise
    except Exception as exc:
        logger.exception("%s_fail error=unexpected", event)
        raise InternalError(str(exc), label=label) from exc


@router.post("/setup")
def setup_instagram(
    body: SetupRequest,
    graph: GraphClient = Depends(get_graph_client),
    store: CredentialStore = Depends(get_store),
) -> dict[str, Any]:
    result = _run(
        "setup",
        "Failed to setup Instagram integration",
        lambda: link_account(graph, store, body.shortLivedToken, _text(body.userId), body.facebookPageId),
    )
    return {"success": True, **result}


@router.get("/posts/{user_id}")
def get_posts(
    user_id: str,
    page: str | None = None,
    graph: GraphClient = Depends(get_graph_client),
    store: CredentialStore = Depends(get_store),
) -> dict[str, Any]:
    result = _run(
        "posts",
        "Failed to fetch Instagram posts",
        lambda: list_posts(graph, store, user_id, parse_page(page)),
    )
    return {"success": True, **result}


@router.post("/upload")
def upload_image(
    body: UploadRequest,
    graph: GraphClient = Depends(get_graph_client),
    store: CredentialStore = Depends(get_store),
) -> dict[str, Any]:
    result = _run(
        "upload",
        "Failed to upload image to Instagram",
        lambda: publish_image(graph, store, _text(body.userId), body.imageUrl, _text(body.caption)),
    )
    return {"success": True, **result}

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from insta_relay.errors import StoreError
from insta_relay.models import Base, InstagramAccount, utc_now

logger = logging.getLogger("insta-relay")


def build_engine(database_url: str) -> Engine:
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        # sessions are opened from FastAPI's worker threads
        connect_args["check_same_thread"] = False
    # bound values include access tokens
    return create_engine(database_url, connect_args=connect_args, hide_parameters=True)


class CredentialStore:
    """One row of Instagram credentials per application user."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_schema(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("db_write_success event=init_schema")

    def upsert_account(
        self,
        user_id: str,
        instagram_account_id: str,
        facebook_page_id: str,
        access_token: str,
    ) -> dict[str, Any]:
        row = InstagramAccount(
            user_id=user_id,
            instagram_account_id=instagram_account_id,
            facebook_page_id=facebook_page_id,
            access_token=access_token,
            connected_at=utc_now(),
        )
        try:
            with self.session() as session:
                stored = session.merge(row)
                session.flush()
                result = stored.to_dict()
        except SQLAlchemyError as exc:
            logger.exception("db_write_fail event=upsert_account user_id=%s", user_id)
            raise StoreError(
                f"Could not save credentials ({exc.__class__.__name__})",
                label="Failed to store Instagram credentials",
            ) from exc
        logger.info("db_write_success event=upsert_account user_id=%s", user_id)
        return result

    def get_account(self, user_id: str) -> dict[str, Any] | None:
        try:
            with self.session() as session:
                account = session.get(InstagramAccount, user_id)
                return account.to_dict() if account is not None else None
        except SQLAlchemyError as exc:
            logger.exception("db_read_fail event=get_account user_id=%s", user_id)
            raise StoreError(f"Could not read credentials ({exc.__class__.__name__})") from exc

    def dispose(self) -> None:
        self.engine.dispose()

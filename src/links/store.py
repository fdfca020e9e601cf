import abc
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import SHORT_ID_LENGTH, SHORT_ID_MAX_ATTEMPTS
from links.exceptions import ShortIdCollisionError, ShortIdExhaustedError
from links.identifiers import generate_secret_id, generate_short_id
from links.models import links as LinkTable
from links.schemas import Link

logger = logging.getLogger(__name__)


class LinkStore(abc.ABC):
    """Creates and looks up links.

    Backends only implement the single-row primitives; the short id
    retry policy lives here so every backend shares it.
    """

    max_attempts: int = SHORT_ID_MAX_ATTEMPTS
    short_id_length: int = SHORT_ID_LENGTH

    async def create_link(self) -> Link:
        secret_key = generate_secret_id()
        for attempt in range(1, self.max_attempts + 1):
            short_id = generate_short_id(self.short_id_length)
            try:
                link = await self._insert_link(short_id, secret_key)
            except ShortIdCollisionError:
                logger.warning(
                    "Short id collision on attempt %s/%s, retrying", attempt, self.max_attempts
                )
                continue
            logger.info("Created link %s", link.short_id)
            return link
        logger.error("Short id allocation exhausted after %s attempts", self.max_attempts)
        raise ShortIdExhaustedError(self.max_attempts)

    @abc.abstractmethod
    async def _insert_link(self, short_id: str, secret_key: str) -> Link:
        """Insert one link row; raise ShortIdCollisionError if short_id is taken."""

    @abc.abstractmethod
    async def get_link(self, short_id: str) -> Optional[Link]:
        ...

    @abc.abstractmethod
    async def get_link_by_id(self, link_id: str) -> Optional[Link]:
        ...


def _is_short_id_violation(exc: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: links.short_id"
    # postgres: 'duplicate key ... "ix_links_short_id" ... Key (short_id)=(...)'
    return "short_id" in str(exc.orig)


class SqlLinkStore(LinkStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _insert_link(self, short_id: str, secret_key: str) -> Link:
        new_link = {
            "id": str(uuid.uuid4()),
            "short_id": short_id,
            "secret_key": secret_key,
            "created_at": datetime.utcnow(),
        }
        statement = insert(LinkTable).values(**new_link)
        try:
            await self.session.execute(statement)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if _is_short_id_violation(exc):
                raise ShortIdCollisionError(short_id) from exc
            logger.error("Failed to insert link: %s", exc)
            raise
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to insert link: %s", exc)
            raise
        return Link(**new_link)

    async def get_link(self, short_id: str) -> Optional[Link]:
        statement = select(LinkTable).where(LinkTable.c.short_id == short_id)
        return await self._fetch_one(statement)

    async def get_link_by_id(self, link_id: str) -> Optional[Link]:
        statement = select(LinkTable).where(LinkTable.c.id == link_id)
        return await self._fetch_one(statement)

    async def _fetch_one(self, statement) -> Optional[Link]:
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch link: %s", exc)
            raise
        row = result.first()
        if row is None:
            return None
        return Link.model_validate(row)


class InMemoryLinkStore(LinkStore):
    """Dict-backed store for tests and local runs without a database."""

    def __init__(self):
        self.links_by_short_id: dict[str, Link] = {}

    async def _insert_link(self, short_id: str, secret_key: str) -> Link:
        if short_id in self.links_by_short_id:
            raise ShortIdCollisionError(short_id)
        link = Link(
            id=str(uuid.uuid4()),
            short_id=short_id,
            secret_key=secret_key,
            created_at=datetime.utcnow(),
        )
        self.links_by_short_id[short_id] = link
        return link

    async def get_link(self, short_id: str) -> Optional[Link]:
        return self.links_by_short_id.get(short_id)

    async def get_link_by_id(self, link_id: str) -> Optional[Link]:
        for link in self.links_by_short_id.values():
            if link.id == link_id:
                return link
        return None

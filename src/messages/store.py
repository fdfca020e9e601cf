import abc
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from links.exceptions import AuthorizationError
from links.identifiers import secret_matches
from links.store import LinkStore
from messages.models import messages as MessageTable
from messages.schemas import Message

logger = logging.getLogger(__name__)


class MessageStore(abc.ABC):
    """Creates, lists and deletes messages scoped to a link's internal id."""

    def __init__(self, links: LinkStore):
        self.links = links

    @abc.abstractmethod
    async def add_message(
        self,
        link_id: str,
        text: str,
        is_safe: Optional[bool] = None,
        moderation_reason: Optional[str] = None,
    ) -> Message:
        ...

    @abc.abstractmethod
    async def get_messages(self, link_id: str) -> list[Message]:
        """Return the link's messages, newest first."""

    async def delete_message(self, message_id: str, link_id: str, secret_key: str) -> bool:
        """Delete one message after checking ownership of its link.

        Returns False when no message matched; raises AuthorizationError
        without deleting anything when the link is missing or the secret
        key is wrong.
        """
        link = await self.links.get_link_by_id(link_id)
        if link is None or not secret_matches(link.secret_key, secret_key):
            logger.warning("Rejected delete of message %s: invalid link or secret key", message_id)
            raise AuthorizationError()
        return await self._delete(message_id, link_id)

    @abc.abstractmethod
    async def _delete(self, message_id: str, link_id: str) -> bool:
        ...


def _new_message(link_id, text, is_safe, moderation_reason) -> dict:
    return {
        "id": str(uuid.uuid4()),
        "link_id": link_id,
        "text": text,
        "is_safe": is_safe,
        "moderation_reason": moderation_reason,
        "created_at": datetime.utcnow(),
        "is_anonymous": True,
    }


class SqlMessageStore(MessageStore):
    def __init__(self, session: AsyncSession, links: LinkStore):
        super().__init__(links)
        self.session = session

    async def add_message(
        self,
        link_id: str,
        text: str,
        is_safe: Optional[bool] = None,
        moderation_reason: Optional[str] = None,
    ) -> Message:
        new_message = _new_message(link_id, text, is_safe, moderation_reason)
        statement = insert(MessageTable).values(**new_message)
        try:
            await self.session.execute(statement)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to add message to link %s: %s", link_id, exc)
            raise
        return Message(**new_message)

    async def get_messages(self, link_id: str) -> list[Message]:
        statement = (
            select(MessageTable)
            .where(MessageTable.c.link_id == link_id)
            .order_by(MessageTable.c.created_at.desc(), MessageTable.c.id.desc())
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch messages for link %s: %s", link_id, exc)
            raise
        return [Message.model_validate(row) for row in result.all()]

    async def _delete(self, message_id: str, link_id: str) -> bool:
        statement = delete(MessageTable).where(
            MessageTable.c.id == message_id, MessageTable.c.link_id == link_id
        )
        try:
            result = await self.session.execute(statement)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to delete message %s: %s", message_id, exc)
            raise
        return result.rowcount > 0


class InMemoryMessageStore(MessageStore):
    def __init__(self, links: LinkStore):
        super().__init__(links)
        self.messages: dict[str, Message] = {}

    async def add_message(
        self,
        link_id: str,
        text: str,
        is_safe: Optional[bool] = None,
        moderation_reason: Optional[str] = None,
    ) -> Message:
        message = Message(**_new_message(link_id, text, is_safe, moderation_reason))
        self.messages[message.id] = message
        return message

    async def get_messages(self, link_id: str) -> list[Message]:
        found = [m for m in self.messages.values() if m.link_id == link_id]
        # newest first, ties broken by id like the SQL ordering
        return sorted(found, key=lambda m: (m.created_at, m.id), reverse=True)

    async def _delete(self, message_id: str, link_id: str) -> bool:
        message = self.messages.get(message_id)
        if message is None or message.link_id != link_id:
            return False
        del self.messages[message_id]
        return True

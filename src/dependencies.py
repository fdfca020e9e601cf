from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ai.moderation import ModerationGateway
from ai.summarization import SummarizationGateway
from database import get_async_session
from links.store import LinkStore, SqlLinkStore
from messages.store import MessageStore, SqlMessageStore


async def get_link_store(session: AsyncSession = Depends(get_async_session)) -> LinkStore:
    return SqlLinkStore(session)


async def get_message_store(
    session: AsyncSession = Depends(get_async_session),
    links: LinkStore = Depends(get_link_store),
) -> MessageStore:
    return SqlMessageStore(session, links)


def get_moderation_gateway() -> ModerationGateway:
    return ModerationGateway()


def get_summarization_gateway() -> SummarizationGateway:
    return SummarizationGateway()

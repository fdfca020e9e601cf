from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi_cache import FastAPICache

from ai.moderation import ModerationGateway
from ai.summarization import SummarizationGateway
from config import SUMMARY_CACHE_SECONDS
from dependencies import (
    get_link_store,
    get_message_store,
    get_moderation_gateway,
    get_summarization_gateway,
)
from links.identifiers import secret_matches
from links.schemas import Link
from links.store import LinkStore
from messages.schemas import MessageCreate, MessageRead, SummaryRead
from messages.store import MessageStore


router = APIRouter(prefix="/links/{short_id}", tags=["messages"])

SECRET_QUERY = Query(None, description="Secret key handed out when the link was created")

SUMMARY_NAMESPACE = "summary"


async def get_link_or_404(store: LinkStore, short_id: str) -> Link:
    link = await store.get_link(short_id)
    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
    return link


async def get_owned_link(store: LinkStore, short_id: str, secret: Optional[str]) -> Link:
    link = await get_link_or_404(store, short_id)
    if not secret_matches(link.secret_key, secret):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. The secret key is missing or incorrect.",
        )
    return link


def summary_cache_key(short_id: str) -> str:
    # must sit under "<prefix>:summary:<short_id>:" for clear_summary_cache to match it
    return f"{FastAPICache.get_prefix()}:{SUMMARY_NAMESPACE}:{short_id}:digest"


async def clear_summary_cache(short_id: str) -> None:
    await FastAPICache.clear(namespace=f"{SUMMARY_NAMESPACE}:{short_id}")


@router.post("/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    short_id: str,
    data: MessageCreate,
    links: LinkStore = Depends(get_link_store),
    store: MessageStore = Depends(get_message_store),
    moderation: ModerationGateway = Depends(get_moderation_gateway),
):
    """
    Send an anonymous message. The text is moderated first; blocked
    messages are not stored and the reason is returned to the sender.
    """
    link = await get_link_or_404(links, short_id)
    decision = await moderation.moderate_content(data.text)
    if not decision.is_safe:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Your message could not be sent: {decision.reason}",
        )
    message = await store.add_message(link.id, data.text, decision.is_safe, decision.reason)
    await clear_summary_cache(short_id)
    return message


@router.get("/messages", response_model=list[MessageRead])
async def list_messages(
    short_id: str,
    secret: Optional[str] = SECRET_QUERY,
    links: LinkStore = Depends(get_link_store),
    store: MessageStore = Depends(get_message_store),
):
    """
    List received messages, newest first (owner only).
    """
    link = await get_owned_link(links, short_id, secret)
    return await store.get_messages(link.id)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    short_id: str,
    message_id: str,
    secret: Optional[str] = SECRET_QUERY,
    links: LinkStore = Depends(get_link_store),
    store: MessageStore = Depends(get_message_store),
):
    """
    Delete one message (owner only). Deleting a message that no longer
    exists is a no-op.
    """
    link = await get_link_or_404(links, short_id)
    if await store.delete_message(message_id, link.id, secret or ""):
        await clear_summary_cache(short_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/summary", response_model=SummaryRead)
async def summarize(
    short_id: str,
    secret: Optional[str] = SECRET_QUERY,
    links: LinkStore = Depends(get_link_store),
    store: MessageStore = Depends(get_message_store),
    summarizer: SummarizationGateway = Depends(get_summarization_gateway),
):
    """
    Summarize the received messages (owner only).
    The digest is cached per link until a message is sent or deleted;
    the secret is checked on every request, cached or not.
    """
    link = await get_owned_link(links, short_id, secret)

    backend = FastAPICache.get_backend()
    coder = FastAPICache.get_coder()
    key = summary_cache_key(short_id)
    cached = await backend.get(key)
    if cached is not None:
        return SummaryRead(summary=coder.decode(cached))

    messages = await store.get_messages(link.id)
    summary = await summarizer.summarize_messages([message.text for message in messages])
    await backend.set(key, coder.encode(summary), SUMMARY_CACHE_SECONDS)
    return SummaryRead(summary=summary)

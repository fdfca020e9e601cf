from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, status

from config import PUBLIC_BASE_URL
from dependencies import get_link_store
from links.schemas import LinkCreated, LinkRead
from links.store import LinkStore


router = APIRouter(prefix="/links", tags=["links"])


def public_base_url(request: Request) -> str:
    return (PUBLIC_BASE_URL or str(request.base_url)).rstrip("/")


@router.post("", response_model=LinkCreated, status_code=status.HTTP_201_CREATED)
async def create_link(request: Request, store: LinkStore = Depends(get_link_store)):
    """
    Create a new anonymous-message link.
    The secret key is only ever returned here; the view URL embeds it.
    """
    link = await store.create_link()
    base_url = public_base_url(request)
    return LinkCreated(
        short_id=link.short_id,
        created_at=link.created_at,
        secret_key=link.secret_key,
        send_url=f"{base_url}/s/{link.short_id}",
        view_url=f"{base_url}/v/{link.short_id}?{urlencode({'secret': link.secret_key})}",
    )


@router.get("/{short_id}", response_model=LinkRead)
async def get_link(short_id: str, store: LinkStore = Depends(get_link_store)):
    """
    Public link info, used by senders to check the link before writing.
    """
    link = await store.get_link(short_id)
    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
    return link

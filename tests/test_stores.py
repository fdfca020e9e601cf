import itertools
from datetime import datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from links.exceptions import AuthorizationError, ShortIdExhaustedError
from links.models import links as LinkTable
from links.store import InMemoryLinkStore, SqlLinkStore
from messages.store import InMemoryMessageStore, SqlMessageStore


@pytest.fixture(params=["sql", "memory"])
async def stores(request, session):
    if request.param == "sql":
        links = SqlLinkStore(session)
        return links, SqlMessageStore(session, links)
    links = InMemoryLinkStore()
    return links, InMemoryMessageStore(links)


async def count_links(store):
    if isinstance(store, InMemoryLinkStore):
        return len(store.links_by_short_id)
    result = await store.session.execute(select(func.count()).select_from(LinkTable))
    return result.scalar_one()


def fixed_short_ids(monkeypatch, *short_ids, then=None):
    ids = itertools.chain(short_ids, itertools.repeat(then) if then else ())
    monkeypatch.setattr("links.store.generate_short_id", lambda length=8: next(ids))


@pytest.mark.anyio
async def test_create_link(stores):
    links, _ = stores
    link = await links.create_link()
    assert len(link.short_id) == 8
    assert link.id and link.id != link.short_id
    assert len(link.secret_key) >= 32
    assert link.created_at is not None

    found = await links.get_link(link.short_id)
    assert found == link
    assert await links.get_link_by_id(link.id) == link


@pytest.mark.anyio
async def test_create_link_retries_short_id_collisions(stores, monkeypatch):
    links, _ = stores
    fixed_short_ids(monkeypatch, "AAAAAAAA", "AAAAAAAA", "AAAAAAAA", "BBBBBBBB")

    first = await links.create_link()
    second = await links.create_link()

    assert first.short_id == "AAAAAAAA"
    assert second.short_id == "BBBBBBBB"
    assert await count_links(links) == 2


@pytest.mark.anyio
async def test_create_link_gives_up_after_max_attempts(stores, monkeypatch):
    links, _ = stores
    fixed_short_ids(monkeypatch, then="AAAAAAAA")
    await links.create_link()

    with pytest.raises(ShortIdExhaustedError) as exc_info:
        await links.create_link()

    assert exc_info.value.attempts == 5
    assert "5 attempts" in str(exc_info.value)
    assert await count_links(links) == 1


@pytest.mark.anyio
async def test_create_link_does_not_retry_other_errors():
    attempts = []

    class BrokenStore(InMemoryLinkStore):
        async def _insert_link(self, short_id, secret_key):
            attempts.append(short_id)
            raise RuntimeError("storage offline")

    with pytest.raises(RuntimeError):
        await BrokenStore().create_link()
    assert len(attempts) == 1


@pytest.mark.anyio
async def test_sql_create_link_surfaces_non_short_id_integrity_errors(session, monkeypatch):
    store = SqlLinkStore(session)
    calls = []

    async def failing_execute(statement, *args, **kwargs):
        calls.append(statement)
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: links.id"))

    monkeypatch.setattr(session, "execute", failing_execute)

    with pytest.raises(IntegrityError):
        await store.create_link()
    assert len(calls) == 1


@pytest.mark.anyio
async def test_get_link_unknown_returns_none(stores):
    links, _ = stores
    assert await links.get_link("nothere1") is None
    assert await links.get_link_by_id("00000000-0000-0000-0000-000000000000") is None


@pytest.mark.anyio
async def test_add_message_preserves_verdict(stores):
    links, messages = stores
    link = await links.create_link()

    safe = await messages.add_message(link.id, "hello", True, "Content meets safety guidelines.")
    flagged = await messages.add_message(link.id, "hmm", False, "Harassment: targets a person.")
    unknown = await messages.add_message(link.id, "legacy")

    stored = {m.id: m for m in await messages.get_messages(link.id)}
    assert stored[safe.id].is_safe is True
    assert stored[safe.id].moderation_reason == "Content meets safety guidelines."
    assert stored[flagged.id].is_safe is False
    assert stored[flagged.id].moderation_reason == "Harassment: targets a person."
    assert stored[unknown.id].is_safe is None
    assert stored[unknown.id].moderation_reason is None
    assert all(m.is_anonymous for m in stored.values())
    assert all(m.link_id == link.id for m in stored.values())


@pytest.mark.anyio
async def test_get_messages_newest_first_and_scoped_to_link(stores):
    links, messages = stores
    link = await links.create_link()
    other = await links.create_link()

    first = await messages.add_message(link.id, "first", True)
    second = await messages.add_message(link.id, "second", True)
    await messages.add_message(other.id, "elsewhere", True)

    listed = await messages.get_messages(link.id)
    assert [m.id for m in listed] == [second.id, first.id]
    assert await messages.get_messages("no-such-link") == []


@pytest.mark.anyio
async def test_delete_message_with_correct_secret(stores):
    links, messages = stores
    link = await links.create_link()
    keep = await messages.add_message(link.id, "keep me", True)
    drop = await messages.add_message(link.id, "drop me", True)

    assert await messages.delete_message(drop.id, link.id, link.secret_key) is True

    remaining = await messages.get_messages(link.id)
    assert [m.id for m in remaining] == [keep.id]


@pytest.mark.anyio
async def test_delete_message_with_wrong_secret(stores):
    links, messages = stores
    link = await links.create_link()
    message = await messages.add_message(link.id, "still here", True)

    with pytest.raises(AuthorizationError):
        await messages.delete_message(message.id, link.id, "not-the-secret")
    with pytest.raises(AuthorizationError):
        await messages.delete_message(message.id, "missing-link", link.secret_key)

    assert len(await messages.get_messages(link.id)) == 1


@pytest.mark.anyio
async def test_delete_message_cannot_cross_links(stores):
    links, messages = stores
    victim = await links.create_link()
    attacker = await links.create_link()
    message = await messages.add_message(victim.id, "not yours", True)

    deleted = await messages.delete_message(message.id, attacker.id, attacker.secret_key)

    assert deleted is False
    assert len(await messages.get_messages(victim.id)) == 1


@pytest.mark.anyio
async def test_delete_missing_message_is_noop(stores):
    links, messages = stores
    link = await links.create_link()
    assert await messages.delete_message("gone", link.id, link.secret_key) is False


@pytest.mark.anyio
async def test_get_messages_orders_same_timestamp_by_id(stores, monkeypatch):
    links, messages = stores
    link = await links.create_link()

    class FrozenClock:
        @staticmethod
        def utcnow():
            return datetime(2024, 5, 1, 12, 0, 0, 123456)

    monkeypatch.setattr("messages.store.datetime", FrozenClock)
    added = [await messages.add_message(link.id, f"tie {i}", True) for i in range(4)]

    listed = await messages.get_messages(link.id)

    assert [m.id for m in listed] == sorted((m.id for m in added), reverse=True)
    assert listed == await messages.get_messages(link.id)

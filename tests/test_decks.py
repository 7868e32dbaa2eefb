"""Tests for deck configuration (service and /decks API)."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.card import Card, CardRarity
from app.models.user import User
from app.services.auth_service import create_access_token
from app.services.deck_service import get_deck_cards, set_deck


async def _user_with_cards(db: AsyncSession, tag: str, count: int = 3) -> tuple[User, list[Card]]:
    user = User(username=f"deck_{tag}")
    cards = [Card(name=f"{tag}-{i}", hp=10 + i, attack_damage=i) for i in range(count)]
    db.add(user)
    db.add_all(cards)
    await db.flush()
    return user, cards


class TestDeckService:
    async def test_empty_deck(self, db_session: AsyncSession):
        user, _ = await _user_with_cards(db_session, "e", count=0)
        assert await get_deck_cards(db_session, user.id) == []

    async def test_set_and_get_keeps_order(self, db_session: AsyncSession):
        user, cards = await _user_with_cards(db_session, "o")
        order = [cards[2].id, cards[0].id, cards[1].id]
        await set_deck(db_session, user.id, order)
        assert [c.id for c in await get_deck_cards(db_session, user.id)] == order

    async def test_replace_deck(self, db_session: AsyncSession):
        user, cards = await _user_with_cards(db_session, "r")
        await set_deck(db_session, user.id, [cards[0].id, cards[1].id])
        await set_deck(db_session, user.id, [cards[2].id])
        assert [c.id for c in await get_deck_cards(db_session, user.id)] == [cards[2].id]

    async def test_too_many_cards(self, db_session: AsyncSession):
        user, cards = await _user_with_cards(db_session, "m", count=settings.max_deck_size + 1)
        with pytest.raises(ValueError):
            await set_deck(db_session, user.id, [c.id for c in cards])

    async def test_duplicate_card(self, db_session: AsyncSession):
        user, cards = await _user_with_cards(db_session, "d")
        with pytest.raises(ValueError):
            await set_deck(db_session, user.id, [cards[0].id, cards[0].id])

    async def test_unknown_card(self, db_session: AsyncSession):
        user, _ = await _user_with_cards(db_session, "u")
        with pytest.raises(ValueError, match="Unknown card"):
            await set_deck(db_session, user.id, [123456])

    async def test_card_rarity_defaults_to_common(self, db_session: AsyncSession):
        _, cards = await _user_with_cards(db_session, "c", count=1)
        await db_session.commit()
        assert cards[0].rarity == CardRarity.common


class TestDeckApi:
    async def test_put_and_get(self, db_client: AsyncClient, db_session: AsyncSession):
        user, cards = await _user_with_cards(db_session, "api")
        await db_session.commit()
        headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}

        resp = await db_client.put("/decks/me", json={"card_ids": [cards[1].id]}, headers=headers)
        assert resp.status_code == 200, resp.text
        assert [c["id"] for c in resp.json()["cards"]] == [cards[1].id]

        resp = await db_client.get("/decks/me", headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["user_id"] == user.id
        assert data["cards"][0]["name"] == "api-1"
        assert data["cards"][0]["rarity"] == "common"

    async def test_put_invalid(self, db_client: AsyncClient, db_session: AsyncSession):
        user, _ = await _user_with_cards(db_session, "bad")
        await db_session.commit()
        headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}

        resp = await db_client.put("/decks/me", json={"card_ids": [999]}, headers=headers)
        assert resp.status_code == 400

        resp = await db_client.put("/decks/me", json={"card_ids": []}, headers=headers)
        assert resp.status_code == 422

    async def test_requires_auth(self, db_client: AsyncClient):
        resp = await db_client.get("/decks/me")
        assert resp.status_code == 401

    async def test_store_outage_returns_503(
        self, db_client: AsyncClient, db_session: AsyncSession, store_outage
    ):
        user, _ = await _user_with_cards(db_session, "down")
        await db_session.commit()
        headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}
        store_outage(db_session, ok_calls=1)

        resp = await db_client.get("/decks/me", headers=headers)
        assert resp.status_code == 503
        assert resp.headers["retry-after"] == "1"

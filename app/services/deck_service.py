"""Deck service: a user's configured battle deck, read when a battle is accepted."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.card import Card, DeckCard


async def get_deck_cards(db: AsyncSession, user_id: int) -> list[Card]:
    """Return the user's deck as catalog cards, in deck order."""
    result = await db.execute(
        select(DeckCard).where(DeckCard.user_id == user_id).order_by(DeckCard.position)
    )
    return [slot.card for slot in result.scalars().all()]


async def set_deck(db: AsyncSession, user_id: int, card_ids: list[int]) -> list[Card]:
    """Replace the user's deck. Raises ValueError on a bad selection."""
    if not card_ids:
        raise ValueError("A deck needs at least one card")
    if len(card_ids) > settings.max_deck_size:
        raise ValueError(f"A deck holds at most {settings.max_deck_size} cards")
    if len(set(card_ids)) != len(card_ids):
        raise ValueError("A card can only appear once in a deck")

    result = await db.execute(select(Card).where(Card.id.in_(card_ids)))
    cards_by_id = {card.id: card for card in result.scalars().all()}
    missing = [cid for cid in card_ids if cid not in cards_by_id]
    if missing:
        raise ValueError(f"Unknown card ids: {missing}")

    await db.execute(delete(DeckCard).where(DeckCard.user_id == user_id))
    for position, card_id in enumerate(card_ids):
        db.add(DeckCard(user_id=user_id, card_id=card_id, position=position))
    await db.commit()
    return [cards_by_id[cid] for cid in card_ids]

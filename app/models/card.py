"""Card catalog and deck models.

Both tables are owned by the collection service; battles only read them.
"""

import enum

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base


class CardRarity(str, enum.Enum):
    common = "common"
    uncommon = "uncommon"
    rare = "rare"
    legendary = "legendary"


class Card(Base):
    __tablename__ = "cards"
    __table_args__ = (
        CheckConstraint("hp > 0", name="ck_cards_hp_positive"),
        CheckConstraint("attack_damage >= 0", name="ck_cards_attack_damage_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    hp: Mapped[int] = mapped_column(Integer, nullable=False)
    attack_damage: Mapped[int] = mapped_column(Integer, nullable=False)
    rarity: Mapped[CardRarity] = mapped_column(
        Enum(CardRarity), nullable=False, default=CardRarity.common
    )


class DeckCard(Base):
    """One slot of a user's currently configured battle deck."""

    __tablename__ = "deck_cards"
    __table_args__ = (
        UniqueConstraint("user_id", "position", name="uq_deck_cards_user_position"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    card_id: Mapped[int] = mapped_column(ForeignKey("cards.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    card: Mapped[Card] = relationship(lazy="selectin")

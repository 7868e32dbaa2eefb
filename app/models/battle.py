"""Battle aggregate: the battle row plus its cards, rounds and plays.

Everything below Battle is owned by exactly one battle and is always loaded
with it (selectin), so a Battle fetched through the store can be walked
without further IO.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.card import Card


class BattleState(str, enum.Enum):
    requested = "requested"
    active = "active"
    rejected = "rejected"
    completed = "completed"
    tied = "tied"
    forfeited = "forfeited"


class BattleSide(str, enum.Enum):
    player_one = "player_one"
    player_two = "player_two"

    @property
    def opponent(self) -> "BattleSide":
        if self is BattleSide.player_one:
            return BattleSide.player_two
        return BattleSide.player_one


# Every legal edge of the lifecycle. Terminal states map to nothing.
BATTLE_TRANSITIONS: dict[BattleState, frozenset[BattleState]] = {
    BattleState.requested: frozenset({BattleState.active, BattleState.rejected}),
    BattleState.active: frozenset(
        {BattleState.completed, BattleState.tied, BattleState.forfeited}
    ),
    BattleState.rejected: frozenset(),
    BattleState.completed: frozenset(),
    BattleState.tied: frozenset(),
    BattleState.forfeited: frozenset(),
}

# Battles that still block a new request between the same two players.
OPEN_PAIR_WHERE = text("state IN ('requested', 'active')")


def _low_player_id(context) -> int:
    params = context.get_current_parameters()
    return min(params["player_one_id"], params["player_two_id"])


def _high_player_id(context) -> int:
    params = context.get_current_parameters()
    return max(params["player_one_id"], params["player_two_id"])


class BattleCard(Base):
    """A catalog card bound to one battle, carrying that battle's HP."""

    __tablename__ = "battle_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    battle_id: Mapped[int] = mapped_column(ForeignKey("battles.id"), nullable=False, index=True)
    card_id: Mapped[int] = mapped_column(ForeignKey("cards.id"), nullable=False)
    side: Mapped[BattleSide] = mapped_column(Enum(BattleSide), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    current_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    is_dead: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    card: Mapped[Card] = relationship(lazy="selectin")


class PlayedCard(Base):
    """A card submitted into a round. round_end_hp stays NULL until the round closes."""

    __tablename__ = "played_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    battle_card_id: Mapped[int] = mapped_column(
        ForeignKey("battle_cards.id"), nullable=False, index=True
    )
    round_start_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    round_end_hp: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)

    battle_card: Mapped[BattleCard] = relationship(lazy="selectin")


class BattleRound(Base):
    __tablename__ = "battle_rounds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    battle_id: Mapped[int] = mapped_column(ForeignKey("battles.id"), nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    player_one_card_id: Mapped[int | None] = mapped_column(
        ForeignKey("played_cards.id"), nullable=True, default=None
    )
    player_two_card_id: Mapped[int | None] = mapped_column(
        ForeignKey("played_cards.id"), nullable=True, default=None
    )
    player_one_viewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    player_two_viewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    player_one_card: Mapped[PlayedCard | None] = relationship(
        foreign_keys=[player_one_card_id], lazy="selectin"
    )
    player_two_card: Mapped[PlayedCard | None] = relationship(
        foreign_keys=[player_two_card_id], lazy="selectin"
    )

    @property
    def is_closed(self) -> bool:
        return self.player_one_card is not None and self.player_two_card is not None

    def played_card_for(self, side: BattleSide) -> PlayedCard | None:
        if side == BattleSide.player_one:
            return self.player_one_card
        return self.player_two_card


class Battle(Base):
    __tablename__ = "battles"
    __table_args__ = (
        Index(
            "uq_battles_open_pair",
            "low_player_id",
            "high_player_id",
            unique=True,
            sqlite_where=OPEN_PAIR_WHERE,
            postgresql_where=OPEN_PAIR_WHERE,
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    state: Mapped[BattleState] = mapped_column(
        Enum(BattleState), nullable=False, default=BattleState.requested, index=True
    )
    player_one_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    player_two_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    winner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, default=None
    )
    # Unordered pair, filled from the player ids on insert.
    low_player_id: Mapped[int] = mapped_column(Integer, nullable=False, default=_low_player_id)
    high_player_id: Mapped[int] = mapped_column(Integer, nullable=False, default=_high_player_id)
    # Optimistic concurrency token; bumped by the store on every committed mutation.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    cards: Mapped[list[BattleCard]] = relationship(
        lazy="selectin", order_by=BattleCard.id, cascade="all, delete-orphan"
    )
    rounds: Mapped[list[BattleRound]] = relationship(
        lazy="selectin", order_by=BattleRound.number, cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    @property
    def is_terminal(self) -> bool:
        return not BATTLE_TRANSITIONS[self.state]

    @property
    def player_one_cards(self) -> list[BattleCard]:
        return self.cards_for(BattleSide.player_one)

    @property
    def player_two_cards(self) -> list[BattleCard]:
        return self.cards_for(BattleSide.player_two)

    @property
    def current_round(self) -> BattleRound | None:
        return self.rounds[-1] if self.rounds else None

    def cards_for(self, side: BattleSide) -> list[BattleCard]:
        return sorted(
            (c for c in self.cards if c.side == side), key=lambda c: c.position
        )

    def side_of(self, user_id: int) -> BattleSide | None:
        if user_id == self.player_one_id:
            return BattleSide.player_one
        if user_id == self.player_two_id:
            return BattleSide.player_two
        return None

    def user_for(self, side: BattleSide) -> int:
        if side == BattleSide.player_one:
            return self.player_one_id
        return self.player_two_id

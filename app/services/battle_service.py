"""Battle state machine — every lifecycle transition and card play.

Lifecycle:
  requested -> active | rejected
  active    -> completed | tied | forfeited

rejected, completed, tied and forfeited are terminal. All mutations run in a
per-battle transaction from battle_store, so a check made here still holds
when the change commits.

At most one requested-or-active battle exists per pair of players. Within one
process the pair lock keeps two requests from both passing the duplicate
check; across processes the uq_battles_open_pair index rejects the loser.
"""

import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.battle import (
    BATTLE_TRANSITIONS,
    Battle,
    BattleCard,
    BattleSide,
    BattleState,
)
from app.services import round_engine
from app.services.auth_service import get_user_by_id
from app.services.battle_store import (
    add_battle,
    battle_transaction,
    locked,
    pair_key,
    store_read,
)
from app.services.deck_service import get_deck_cards
from app.services.errors import (
    BattleForbiddenError,
    BattleNotFoundError,
    DuplicatePlayError,
    DuplicateRequestError,
    InvalidStateError,
    InvalidTargetError,
)

logger = logging.getLogger(__name__)

OPEN_STATES = (BattleState.requested, BattleState.active)


def transition(battle: Battle, new_state: BattleState) -> None:
    """Move ``battle`` to ``new_state`` or raise InvalidStateError for an illegal edge."""
    if new_state not in BATTLE_TRANSITIONS[battle.state]:
        raise InvalidStateError(
            f"Battle is {battle.state.value}; cannot move to {new_state.value}. "
            "State changed, please refresh"
        )
    battle.state = new_state


def _require_state(battle: Battle, state: BattleState) -> None:
    if battle.state != state:
        raise InvalidStateError(
            f"Battle is {battle.state.value}, expected {state.value}. State changed, please refresh"
        )


def _require_participant(battle: Battle, user_id: int) -> BattleSide:
    side = battle.side_of(user_id)
    if side is None:
        raise BattleForbiddenError("You are not a player in this battle")
    return side


def _require_responder(battle: Battle, user_id: int) -> None:
    if user_id != battle.player_two_id:
        raise BattleForbiddenError("Only the challenged player can respond to this request")


async def find_open_battle_between(db: AsyncSession, user_a: int, user_b: int) -> Battle | None:
    result = await db.execute(
        select(Battle)
        .where(
            Battle.state.in_(OPEN_STATES),
            or_(
                and_(Battle.player_one_id == user_a, Battle.player_two_id == user_b),
                and_(Battle.player_one_id == user_b, Battle.player_two_id == user_a),
            ),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def request_battle(db: AsyncSession, requester_id: int, target_id: int) -> Battle:
    if requester_id == target_id:
        raise InvalidTargetError("You cannot battle yourself")
    async with store_read(db):
        target = await get_user_by_id(db, target_id)
    if target is None:
        raise InvalidTargetError(f"User {target_id} does not exist")

    # Serialize requests per pair so two racing requests can't both pass the check.
    async with locked(pair_key(requester_id, target_id)):
        async with store_read(db):
            existing = await find_open_battle_between(db, requester_id, target_id)
        if existing is not None:
            raise DuplicateRequestError(
                f"Battle {existing.id} between these players is already {existing.state.value}"
            )
        try:
            battle = await add_battle(
                db,
                Battle(
                    player_one_id=requester_id,
                    player_two_id=target_id,
                    state=BattleState.requested,
                    version=1,
                ),
            )
        except IntegrityError as exc:
            # Another worker opened a battle for this pair after our check.
            raise DuplicateRequestError(
                "An open battle between these players already exists"
            ) from exc

    logger.info("Battle %s requested by user %s against user %s", battle.id, requester_id, target_id)
    return battle


async def _materialize_cards(db: AsyncSession, battle: Battle) -> None:
    decks: dict[BattleSide, list] = {}
    for side in BattleSide:
        deck = await get_deck_cards(db, battle.user_for(side))
        if not deck:
            raise InvalidStateError(
                f"User {battle.user_for(side)} has no cards in their deck; cannot start the battle"
            )
        if any(card.hp <= 0 for card in deck):
            raise InvalidStateError(
                f"User {battle.user_for(side)} has a card with no hp in their deck; cannot start the battle"
            )
        decks[side] = deck

    for side, deck in decks.items():
        for position, card in enumerate(deck):
            battle.cards.append(
                BattleCard(
                    card=card,
                    side=side,
                    position=position,
                    current_hp=card.hp,
                    is_dead=False,
                )
            )


async def accept_battle(db: AsyncSession, battle_id: int, acting_user_id: int) -> Battle:
    async with battle_transaction(db, battle_id) as battle:
        _require_responder(battle, acting_user_id)
        _require_state(battle, BattleState.requested)
        await _materialize_cards(db, battle)
        transition(battle, BattleState.active)
        battle.rounds.append(round_engine.new_round(1))

    logger.info("Battle %s accepted by user %s", battle_id, acting_user_id)
    return battle


async def reject_battle(db: AsyncSession, battle_id: int, acting_user_id: int) -> Battle:
    async with battle_transaction(db, battle_id) as battle:
        _require_responder(battle, acting_user_id)
        _require_state(battle, BattleState.requested)
        transition(battle, BattleState.rejected)

    logger.info("Battle %s rejected by user %s", battle_id, acting_user_id)
    return battle


async def forfeit_battle(db: AsyncSession, battle_id: int, acting_user_id: int) -> Battle:
    async with battle_transaction(db, battle_id) as battle:
        side = _require_participant(battle, acting_user_id)
        _require_state(battle, BattleState.active)
        transition(battle, BattleState.forfeited)
        battle.winner_id = battle.user_for(side.opponent)

    logger.info("Battle %s forfeited by user %s", battle_id, acting_user_id)
    return battle


async def play_card(
    db: AsyncSession, battle_id: int, acting_user_id: int, battle_card_id: int
) -> Battle:
    """Submit a card for the open round and resolve the round once both sides have played."""
    async with battle_transaction(db, battle_id) as battle:
        side = _require_participant(battle, acting_user_id)
        _require_state(battle, BattleState.active)

        battle_card = next((c for c in battle.cards if c.id == battle_card_id), None)
        if battle_card is None:
            raise BattleNotFoundError(f"Card {battle_card_id} is not part of battle {battle_id}")
        if battle_card.side != side:
            raise BattleForbiddenError("That card belongs to your opponent")
        if battle_card.is_dead:
            raise BattleForbiddenError("That card has been defeated and cannot be played")

        current = battle.current_round
        if current.played_card_for(side) is not None:
            raise DuplicatePlayError(f"You already played a card in round {current.number}")

        round_engine.submit_play(current, side, battle_card)
        if current.is_closed:
            _close_round(battle)

    return battle


def _close_round(battle: Battle) -> None:
    closing = battle.current_round
    round_engine.resolve_round(closing)

    outcome = round_engine.battle_outcome(battle)
    if outcome is None:
        battle.rounds.append(round_engine.new_round(closing.number + 1))
        return

    transition(battle, outcome.state)
    battle.winner_id = (
        battle.user_for(outcome.winner_side) if outcome.winner_side is not None else None
    )
    logger.info(
        "Battle %s ended %s after round %s (winner: %s)",
        battle.id,
        outcome.state.value,
        closing.number,
        battle.winner_id,
    )


async def view_battle(db: AsyncSession, battle_id: int, acting_user_id: int) -> Battle:
    """Acknowledge the latest closed round for the acting player. Idempotent."""
    async with battle_transaction(db, battle_id) as battle:
        side = _require_participant(battle, acting_user_id)
        closed = round_engine.last_closed_round(battle)
        if closed is not None:
            round_engine.mark_viewed(closed, side)

    return battle

"""Round resolution engine — the rules of a card battle, free of any IO.

A round holds one play per side. When the second play lands the round
closes and damage is applied simultaneously:

  new_hp = max(0, round_start_hp - opposing card's attack_damage)

Both sides read their pre-damage HP, so the result does not depend on who
played first. After each closure the battle either ends (one or both sides
exhausted) or gets a fresh empty round.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.models.battle import (
    Battle,
    BattleCard,
    BattleRound,
    BattleSide,
    BattleState,
    PlayedCard,
)


@dataclass(frozen=True)
class BattleOutcome:
    """Terminal result of a battle after a round closure."""

    state: BattleState
    winner_side: BattleSide | None


def damage_after_hit(start_hp: int, incoming_damage: int) -> int:
    # A hit never heals.
    return max(0, start_hp - max(0, incoming_damage))


def new_round(number: int) -> BattleRound:
    # Relationship slots are set explicitly so a fresh round never lazy-loads.
    return BattleRound(
        number=number,
        player_one_card=None,
        player_two_card=None,
        player_one_viewed=False,
        player_two_viewed=False,
    )


def submit_play(battle_round: BattleRound, side: BattleSide, battle_card: BattleCard) -> PlayedCard:
    """Fill ``side``'s slot of an open round. The caller has already validated the play."""
    played = PlayedCard(
        battle_card=battle_card,
        round_start_hp=battle_card.current_hp,
        round_end_hp=None,
    )
    if side == BattleSide.player_one:
        battle_round.player_one_card = played
    else:
        battle_round.player_two_card = played
    return played


def resolve_round(battle_round: BattleRound) -> None:
    """Apply simultaneous damage for a round whose two slots are filled."""
    if not battle_round.is_closed:
        raise ValueError(f"Round {battle_round.number} is still waiting for a play")

    one = battle_round.player_one_card
    two = battle_round.player_two_card
    # Read both hits before writing anything.
    one_end = damage_after_hit(one.round_start_hp, two.battle_card.card.attack_damage)
    two_end = damage_after_hit(two.round_start_hp, one.battle_card.card.attack_damage)

    for played, end_hp in ((one, one_end), (two, two_end)):
        played.round_end_hp = end_hp
        played.battle_card.current_hp = end_hp
        played.battle_card.is_dead = end_hp == 0


def is_exhausted(cards: list[BattleCard]) -> bool:
    return all(card.is_dead for card in cards)


def battle_outcome(battle: Battle) -> BattleOutcome | None:
    """Return the terminal outcome, or None when both sides can still play."""
    one_out = is_exhausted(battle.player_one_cards)
    two_out = is_exhausted(battle.player_two_cards)
    if one_out and two_out:
        return BattleOutcome(BattleState.tied, None)
    if one_out:
        return BattleOutcome(BattleState.completed, BattleSide.player_two)
    if two_out:
        return BattleOutcome(BattleState.completed, BattleSide.player_one)
    return None


def last_closed_round(battle: Battle) -> BattleRound | None:
    for battle_round in reversed(battle.rounds):
        if battle_round.is_closed:
            return battle_round
    return None


def mark_viewed(battle_round: BattleRound, side: BattleSide) -> bool:
    """Set ``side``'s viewed flag. Returns True only when the flag changed."""
    if side == BattleSide.player_one:
        if battle_round.player_one_viewed:
            return False
        battle_round.player_one_viewed = True
    else:
        if battle_round.player_two_viewed:
            return False
        battle_round.player_two_viewed = True
    return True

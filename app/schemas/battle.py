from datetime import datetime
from typing import Optional

from pydantic import BaseModel, computed_field

from app.models.battle import BattleSide, BattleState
from app.models.card import CardRarity


class BattleRequestCreate(BaseModel):
    target_user_id: int


class PlayCardRequest(BaseModel):
    battle_card_id: int


class CardResponse(BaseModel):
    id: int
    name: str
    hp: int
    attack_damage: int
    rarity: CardRarity

    model_config = {"from_attributes": True}


class BattleCardResponse(BaseModel):
    id: int
    side: BattleSide
    position: int
    current_hp: int
    is_dead: bool
    card: CardResponse

    model_config = {"from_attributes": True}


class PlayedCardResponse(BaseModel):
    battle_card_id: int
    round_start_hp: int
    round_end_hp: Optional[int]

    model_config = {"from_attributes": True}


class RoundResponse(BaseModel):
    number: int
    player_one_card: Optional[PlayedCardResponse]
    player_two_card: Optional[PlayedCardResponse]
    player_one_viewed: bool
    player_two_viewed: bool
    is_closed: bool

    model_config = {"from_attributes": True}


class BattleResponse(BaseModel):
    id: int
    state: BattleState
    player_one_id: int
    player_two_id: int
    winner_id: Optional[int]
    version: int
    created_at: datetime
    player_one_cards: list[BattleCardResponse] = []
    player_two_cards: list[BattleCardResponse] = []
    rounds: list[RoundResponse] = []

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def is_terminal(self) -> bool:
        return self.state not in (BattleState.requested, BattleState.active)

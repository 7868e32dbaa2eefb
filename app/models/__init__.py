from app.models.base import Base  # noqa: F401
from app.models.battle import (  # noqa: F401
    Battle,
    BattleCard,
    BattleRound,
    BattleSide,
    BattleState,
    PlayedCard,
)
from app.models.card import Card, CardRarity, DeckCard  # noqa: F401
from app.models.user import User  # noqa: F401

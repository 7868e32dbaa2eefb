from pydantic import BaseModel, Field

from app.schemas.battle import CardResponse


class DeckUpdate(BaseModel):
    card_ids: list[int] = Field(min_length=1)


class DeckResponse(BaseModel):
    user_id: int
    cards: list[CardResponse]

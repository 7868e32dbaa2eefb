from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.battle import CardResponse
from app.schemas.deck import DeckResponse, DeckUpdate
from app.services.battle_store import store_read
from app.services.deck_service import get_deck_cards, set_deck
from app.services.errors import TransientUnavailableError

router = APIRouter(prefix="/decks", tags=["decks"])


def _unavailable(exc: TransientUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(exc),
        headers={"Retry-After": "1"},
    )


@router.get("/me", response_model=DeckResponse)
async def get_my_deck(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        async with store_read(db):
            cards = await get_deck_cards(db, current_user.id)
    except TransientUnavailableError as e:
        raise _unavailable(e)
    return DeckResponse(
        user_id=current_user.id,
        cards=[CardResponse.model_validate(c) for c in cards],
    )


@router.put("/me", response_model=DeckResponse)
async def replace_my_deck(
    body: DeckUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace the deck used the next time one of your battles is accepted."""
    try:
        async with store_read(db):
            cards = await set_deck(db, current_user.id, body.card_ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except TransientUnavailableError as e:
        raise _unavailable(e)
    return DeckResponse(
        user_id=current_user.id,
        cards=[CardResponse.model_validate(c) for c in cards],
    )

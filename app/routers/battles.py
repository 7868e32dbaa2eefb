from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.battle import BattleRequestCreate, BattleResponse, PlayCardRequest
from app.services.battle_query import (
    get_battle_for_user,
    in_progress_battles,
    list_user_battles,
    received_requests,
    sent_requests,
)
from app.services.battle_service import (
    accept_battle,
    forfeit_battle,
    play_card,
    reject_battle,
    request_battle,
    view_battle,
)
from app.services.errors import (
    BattleError,
    BattleForbiddenError,
    BattleNotFoundError,
    DuplicatePlayError,
    DuplicateRequestError,
    InvalidStateError,
    InvalidTargetError,
    TransientUnavailableError,
)

router = APIRouter(prefix="/battles", tags=["battles"])

_ERROR_STATUS: dict[type[BattleError], int] = {
    BattleNotFoundError: status.HTTP_404_NOT_FOUND,
    BattleForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_409_CONFLICT,
    InvalidTargetError: status.HTTP_400_BAD_REQUEST,
    DuplicateRequestError: status.HTTP_409_CONFLICT,
    DuplicatePlayError: status.HTTP_409_CONFLICT,
    TransientUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _http_error(exc: BattleError) -> HTTPException:
    code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    headers = {"Retry-After": "1"} if isinstance(exc, TransientUnavailableError) else None
    return HTTPException(status_code=code, detail=str(exc), headers=headers)


@router.post("", response_model=BattleResponse, status_code=status.HTTP_201_CREATED)
async def create_battle_request(
    body: BattleRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return await request_battle(db, current_user.id, body.target_user_id)
    except BattleError as e:
        raise _http_error(e)


@router.get("", response_model=list[BattleResponse])
async def list_battles(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return await list_user_battles(db, current_user.id)
    except BattleError as e:
        raise _http_error(e)


@router.get("/sent", response_model=list[BattleResponse])
async def list_sent_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pending requests the current user sent and nobody has answered yet."""
    try:
        battles = await list_user_battles(db, current_user.id)
    except BattleError as e:
        raise _http_error(e)
    return sent_requests(battles, current_user.id)


@router.get("/received", response_model=list[BattleResponse])
async def list_received_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pending requests waiting for the current user's answer."""
    try:
        battles = await list_user_battles(db, current_user.id)
    except BattleError as e:
        raise _http_error(e)
    return received_requests(battles, current_user.id)


@router.get("/active", response_model=list[BattleResponse])
async def list_active_battles(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        battles = await list_user_battles(db, current_user.id)
    except BattleError as e:
        raise _http_error(e)
    return in_progress_battles(battles, current_user.id)


@router.get("/{battle_id}", response_model=BattleResponse)
async def get_battle_info(
    battle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return await get_battle_for_user(db, battle_id, current_user.id)
    except BattleError as e:
        raise _http_error(e)


@router.post("/{battle_id}/accept", response_model=BattleResponse)
async def accept_battle_request(
    battle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return await accept_battle(db, battle_id, current_user.id)
    except BattleError as e:
        raise _http_error(e)


@router.post("/{battle_id}/reject", response_model=BattleResponse)
async def reject_battle_request(
    battle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return await reject_battle(db, battle_id, current_user.id)
    except BattleError as e:
        raise _http_error(e)


@router.post("/{battle_id}/forfeit", response_model=BattleResponse)
async def forfeit_active_battle(
    battle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return await forfeit_battle(db, battle_id, current_user.id)
    except BattleError as e:
        raise _http_error(e)


@router.post("/{battle_id}/play", response_model=BattleResponse)
async def play_battle_card(
    battle_id: int,
    body: PlayCardRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Play one of your living cards into the open round.

    The round resolves as soon as both players have played.
    """
    try:
        return await play_card(db, battle_id, current_user.id, body.battle_card_id)
    except BattleError as e:
        raise _http_error(e)


@router.post("/{battle_id}/view", response_model=BattleResponse)
async def view_battle_results(
    battle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Acknowledge the results of the latest resolved round."""
    try:
        return await view_battle(db, battle_id, current_user.id)
    except BattleError as e:
        raise _http_error(e)

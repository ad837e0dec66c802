from typing import List
from fastapi import APIRouter, Depends, Request
from ..schemas.users import UserOut, UserSummary
from ..schemas.messages import SentMessageOut, ReceivedMessageOut
from ..access import ensure_correct_user
from ..auth import get_current_user

router = APIRouter()


@router.get('/', response_model=List[UserSummary])
async def list_users(request: Request, current_user: dict = Depends(get_current_user)):
    return await request.app.state.users.all()


@router.get('/{username}', response_model=UserOut)
async def get_user(username: str, request: Request, current_user: dict = Depends(get_current_user)):
    ensure_correct_user(current_user['username'], username)
    return await request.app.state.users.get(username)


@router.get('/{username}/to', response_model=List[ReceivedMessageOut])
async def messages_to(username: str, request: Request, current_user: dict = Depends(get_current_user)):
    ensure_correct_user(current_user['username'], username)
    return await request.app.state.users.messages_to(username)


@router.get('/{username}/from', response_model=List[SentMessageOut])
async def messages_from(username: str, request: Request, current_user: dict = Depends(get_current_user)):
    ensure_correct_user(current_user['username'], username)
    return await request.app.state.users.messages_from(username)

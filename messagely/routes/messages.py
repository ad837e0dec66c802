from fastapi import APIRouter, Depends, Request
from ..schemas.messages import MessageIn, MessageOut, ReadReceiptOut
from ..access import ensure_can_view, ensure_can_mark_read
from ..auth import get_current_user

router = APIRouter()


@router.get('/{message_id}', response_model=MessageOut)
async def detail(message_id: int, request: Request, current_user: dict = Depends(get_current_user)):
    message = await request.app.state.messages.get(message_id)
    ensure_can_view(current_user['username'], message)
    return message


@router.post('/', response_model=MessageOut)
async def send(payload: MessageIn, request: Request, current_user: dict = Depends(get_current_user)):
    return await request.app.state.messages.create(current_user['username'], payload.to_username, payload.body)


@router.post('/{message_id}/read', response_model=ReadReceiptOut)
async def mark_read(message_id: int, request: Request, current_user: dict = Depends(get_current_user)):
    ledger = request.app.state.messages
    message = await ledger.get(message_id)
    ensure_can_mark_read(current_user['username'], message)
    return await ledger.mark_read(message_id)

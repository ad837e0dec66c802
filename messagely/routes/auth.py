from fastapi import APIRouter, Request
from ..schemas.users import RegisterIn, LoginIn, TokenOut

router = APIRouter()


@router.post('/login', response_model=TokenOut)
async def login(payload: LoginIn, request: Request):
    await request.app.state.credentials.login(payload.username, payload.password)
    return {'token': request.app.state.tokens.issue(payload.username)}


@router.post('/register', response_model=TokenOut)
async def register(payload: RegisterIn, request: Request):
    """Register, log the new user in and return a token."""
    credentials = request.app.state.credentials
    user = await credentials.register(payload)
    await credentials.update_login_timestamp(user.username)
    return {'token': request.app.state.tokens.issue(user.username)}

from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel

from quizbank.core.auth import create_token

router = APIRouter()


class MockLogin(BaseModel):
    user_id: int
    roles: List[str]


@router.post("/mock-login")
def mock_login(payload: MockLogin, request: Request):
    settings = request.app.state.settings
    token = create_token(settings.APP_SECRET.get_secret_value(), payload.user_id, payload.roles, settings.TOKEN_TTL_MINUTES)
    return {"access_token": token, "token_type": "bearer", "roles": payload.roles}

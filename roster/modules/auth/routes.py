from fastapi import APIRouter, Depends
from roster.modules.auth.schemas import CurrentUserResponse
from roster.core.dependencies import get_current_user
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(current_user: Dict = Depends(get_current_user)):
    """Get the user the bearer token belongs to"""
    return current_user

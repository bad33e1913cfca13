from fastapi import APIRouter, Depends
from interview_buddy.core.dependencies import get_current_user
from interview_buddy.models.user import UserCreate, UserLogin, UserOut
from interview_buddy.services.auth_service import AuthService

router = APIRouter()

@router.post("/signup", response_model=UserOut)
def signup(user: UserCreate):
    return AuthService.signup(user)

@router.post("/login")
def login(user: UserLogin):
    return AuthService.login(user)

@router.get("/me")
def me(current_user: dict = Depends(get_current_user)):
    return current_user

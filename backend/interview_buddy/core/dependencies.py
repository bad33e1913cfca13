from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
import jwt
from interview_buddy.core.config import settings
from interview_buddy.core.database import UserDB

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def decode_token(token: str) -> str:
    """User id carried by a bearer token; raises jwt.PyJWTError when unusable"""
    payload = jwt.decode(token.replace("Bearer ", ""), settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    user_id = payload.get("user_id")
    if not user_id:
        raise jwt.InvalidTokenError("Token carries no user_id")
    return user_id

def user_profile(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "email": user["email"],
        "name": user["name"]
    }

def get_current_user(token: str = Depends(oauth2_scheme)):
    try:
        user_id = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Could not validate credentials")

    user = UserDB.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return user_profile(user)

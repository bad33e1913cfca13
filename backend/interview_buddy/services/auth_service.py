from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
import logging
import jwt
from fastapi import HTTPException
from interview_buddy.core.config import settings
from interview_buddy.models.user import UserCreate, UserLogin
from interview_buddy.core.database import UserDB

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

class AuthService:

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def create_token(user_id: str, email: str) -> str:
        payload = {
            "user_id": user_id,
            "email": email,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def signup(user: UserCreate):
        email = user.email.strip().lower()
        if UserDB.get_user_by_email(email):
            raise HTTPException(status_code=400, detail="Email already registered")

        hashed_pw = AuthService.hash_password(user.password)
        user_doc = UserDB.create_user(user.name, email, hashed_pw)
        token = AuthService.create_token(str(user_doc["_id"]), email)
        logger.info(f"✅ [AUTH] Registered user {user_doc['_id']}")

        return {
            "id": str(user_doc["_id"]),
            "name": user_doc["name"],
            "email": user_doc["email"],
            "created_at": user_doc["created_at"],
            "token": token
        }

    @staticmethod
    def login(user: UserLogin):
        email = user.email.strip().lower()
        user_doc = UserDB.get_user_by_email(email)
        if not user_doc:
            raise HTTPException(status_code=404, detail="User not found")

        if not AuthService.verify_password(user.password, user_doc["hashed_password"]):
            raise HTTPException(status_code=401, detail="Invalid credentials")

        token = AuthService.create_token(str(user_doc["_id"]), email)
        return {
            "token": token,
            "user": {"id": str(user_doc["_id"]), "name": user_doc["name"], "email": email}
        }

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr
from pymongo.database import Database

import config
from database import get_db
from errors import AuthenticationFailed
from validation import is_valid_object_id

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    id: str
    email: EmailStr
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    name: Optional[str] = None
    role: str = "CUSTOMER"
    wishlist: List[dict] = []

    @classmethod
    def from_doc(cls, doc: dict) -> "UserOut":
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            firstName=doc.get("firstName"),
            lastName=doc.get("lastName"),
            name=doc.get("name"),
            role=doc.get("role", "CUSTOMER"),
            wishlist=doc.get("wishlist") or [],
        )


def verify_password(plain_password, hashed_password):
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def get_current_user(token: str = Depends(oauth2_scheme), db: Database = Depends(get_db)) -> dict:
    """Resolve the bearer token to the stored user document."""
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise AuthenticationFailed()

    user_id = payload.get("sub")
    if not is_valid_object_id(user_id):
        raise AuthenticationFailed()

    user = db["user"].find_one({"_id": ObjectId(user_id), "isActive": {"$ne": False}})
    if not user:
        raise AuthenticationFailed()
    return user

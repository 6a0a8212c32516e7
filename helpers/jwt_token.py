import jwt
import os
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from fastapi import Depends, HTTPException
from typing import Annotated
from models.user import User

security = HTTPBearer()

def generate_user_token(payload: dict):
    jwt_key = os.getenv("JWT_SECRET")
    if not jwt_key:
        raise ValueError("JWT_SECRET environment variable is not set")
    token = jwt.encode(payload, jwt_key, algorithm='HS256')
    return token

def decode_user_token(token: str):
    jwt_key = os.getenv("JWT_SECRET")
    if not jwt_key:
        raise ValueError("JWT_SECRET environment variable is not set")
    try:
        return jwt.decode(token, jwt_key, algorithms=['HS256'])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid Token")


async def get_current_user(credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)]) -> User:
    user_credential = decode_user_token(token=credentials.credentials)

    if user_credential and "id" in user_credential:
        user = await User.get_or_none(id=user_credential["id"])
        if not user:
            raise HTTPException(status_code=401, detail="Invalid Credentials")
        return user

    raise HTTPException(status_code=401, detail="Invalid Token")

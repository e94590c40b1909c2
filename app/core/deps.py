from typing import Optional

from fastapi import Header, HTTPException, Request

from app.core.security import TokenClaims, TokenError, decode_access_token


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Header(None),
) -> TokenClaims:
    raw = authorization or token
    if not raw:
        raise HTTPException(status_code=401, detail="No token provided")

    credentials = raw.replace("Bearer ", "", 1).strip()
    try:
        return decode_access_token(credentials, request.app.state.settings.jwt_secret)
    except TokenError:
        raise HTTPException(status_code=403, detail="Invalid or expired token")


def get_cipher(request: Request):
    return request.app.state.cipher


def get_cleanup_queue(request: Request):
    return request.app.state.cleanup_queue


def get_mailer(request: Request):
    return request.app.state.mailer


def get_storage(request: Request):
    return request.app.state.storage


def get_generator(request: Request):
    return request.app.state.generator

import hmac
from typing import Optional

from fastapi import HTTPException, Request, Response

from . import config

COOKIE_VALUE = "authenticated"


def require_session(request: Request) -> None:
    """Reject requests that do not carry the session cookie.

    Only presence is checked; the cookie is issued by :func:`login` after a
    shared-password match and carries no identity.
    """
    if request.cookies.get(config.AUTH_COOKIE_NAME) is None:
        raise HTTPException(status_code=401, detail="not_authenticated")


def check_password(password: Optional[str]) -> bool:
    if password is None:
        return False
    return hmac.compare_digest(password.encode("utf-8"), config.AUTH_PASSWORD.encode("utf-8"))


def login(response: Response, password: Optional[str]) -> None:
    if not check_password(password):
        raise HTTPException(status_code=401, detail="invalid_password")
    response.set_cookie(
        key=config.AUTH_COOKIE_NAME,
        value=COOKIE_VALUE,
        max_age=config.AUTH_COOKIE_MAX_AGE,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


def logout(response: Response) -> None:
    response.delete_cookie(config.AUTH_COOKIE_NAME)

"""FastAPI dependencies: get_current_identity, require_admin, get_operation_id.

Usage in any protected router:
    from src.bw_gateway.auth.dependencies import get_current_identity

    @router.get("/protected")
    async def protected(identity: Identity = Depends(get_current_identity)):
        ...
"""

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.bw_common.errors import AdminRequiredError, InvalidIdentityError
from src.bw_common.identifiers import caller_operation_id, new_id
from src.bw_gateway.auth.identity import Identity
from src.bw_gateway.auth.jwt_handler import decode_identity

# Tokens come from the identity provider; tokenUrl only feeds Swagger UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_identity(token: str = Depends(oauth2_scheme)) -> Identity:
    """Extract and validate the Bearer token, return the caller's Identity.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    try:
        return decode_identity(token)
    except InvalidIdentityError:
        raise _CREDENTIALS_EXCEPTION from None


async def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    if not identity.is_admin:
        raise AdminRequiredError()
    return identity


async def get_operation_id(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    idempotency_key: str | None = Header(default=None, max_length=128),
) -> str:
    """Operation id of a money request, scoped to the caller.

    A request without an Idempotency-Key header gets a generated one. The key
    is kept on request.state so a retriable error can hand it back.
    """
    key = idempotency_key or new_id()
    request.state.idempotency_key = key
    return caller_operation_id(identity.user_id, key)

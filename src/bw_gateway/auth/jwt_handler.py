"""Identity token verification.

Tokens are issued by the external identity provider (HS256, shared
JWT_SECRET). This service never stores credentials; it only checks the
signature and the shape of the claims:
    sub       user id, must be a UUID
    phone     the user's phone number, normalized on the way in
    is_admin  optional, defaults to False

create_identity_token exists for local tooling and tests.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.bw_common.errors import InvalidIdentityError, InvalidPhoneError
from src.bw_common.identifiers import is_valid_uuid
from src.bw_gateway.auth.identity import Identity
from src.bw_transfer.domain.phone import normalize_phone

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"


def create_identity_token(
    user_id: str,
    phone: str,
    is_admin: bool = False,
    expires_in: timedelta = timedelta(minutes=30),
) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "phone": phone,
        "is_admin": is_admin,
        "type": "access",
        "iat": now,
        "exp": now + expires_in,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_identity(token: str) -> Identity:
    """Decode and validate an identity token.

    Raises:
        InvalidIdentityError: bad signature, expired, wrong type, or a
            malformed user id / phone claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidIdentityError() from None

    if payload.get("type") != "access":
        raise InvalidIdentityError()

    user_id = payload.get("sub")
    phone = payload.get("phone")
    if not is_valid_uuid(user_id) or not isinstance(phone, str):
        raise InvalidIdentityError()
    try:
        phone = normalize_phone(phone)
    except InvalidPhoneError:
        raise InvalidIdentityError() from None

    return Identity(
        user_id=str(user_id).lower(),
        phone=phone,
        is_admin=bool(payload.get("is_admin")),
    )

import re

from src.bw_common.errors import InvalidPhoneError

_SEPARATORS = re.compile(r"[\s\-.()]")
_PHONE_RE = re.compile(r"^\+?[0-9]{8,15}$")


def normalize_phone(raw: str) -> str:
    """'+212 600-11.22.33' -> '+212600112233'. Raises InvalidPhoneError."""
    if not isinstance(raw, str):
        raise InvalidPhoneError(str(raw))
    phone = _SEPARATORS.sub("", raw)
    if not _PHONE_RE.match(phone):
        raise InvalidPhoneError(raw)
    return phone

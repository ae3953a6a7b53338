"""Identity supplied by the external identity provider."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    user_id: str
    phone: str
    is_admin: bool = False

from dataclasses import dataclass
from enum import Enum

from Utils.appError import ForbiddenError


# =====================================
#  ROLE ENUM
# =====================================
class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    """The authenticated subject of a request, as carried by its bearer token."""
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, user_id) -> bool:
        return str(user_id) == self.user_id

    @classmethod
    def from_claims(cls, claims: dict):
        """Build a caller from decoded token claims; None if they are unusable."""
        user_id = claims.get("user_id")
        try:
            role = Role(claims.get("role"))
        except ValueError:
            return None
        if not user_id:
            return None
        return cls(user_id=str(user_id), role=role)


def require_admin(caller: Caller):
    if not caller.is_admin:
        raise ForbiddenError("Access denied. Requires role(s): admin")


def require_owner(caller: Caller, user_id):
    if not caller.owns(user_id):
        raise ForbiddenError("Access denied")


def require_owner_or_admin(caller: Caller, user_id):
    if not (caller.owns(user_id) or caller.is_admin):
        raise ForbiddenError("Access denied")

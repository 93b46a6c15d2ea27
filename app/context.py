# app/context.py
"""
Request-scoped caller identity.

Authentication happens upstream (identity provider / gateway). It forwards the
verified user as X-User-Id, X-User-Role and X-User-Name headers; each request
gets its own immutable RequestContext that is passed explicitly to services.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from app.errors import UnauthenticatedError, ForbiddenError


class Role(str, enum.Enum):
    STUDENT = "student"
    MENTOR = "mentor"
    HOD = "hod"
    SECURITY = "security"


ROLE_LABELS = {
    Role.STUDENT: "Student",
    Role.MENTOR: "Mentor",
    Role.HOD: "HOD",
    Role.SECURITY: "Security",
}


@dataclass(frozen=True)
class RequestContext:
    actor_id: Optional[str]
    role: Optional[Role]
    display_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.actor_id)

    @property
    def name_for_record(self) -> str:
        """Display name captured on decisions; falls back to the role label."""
        if self.display_name:
            return self.display_name
        return ROLE_LABELS.get(self.role, "Unknown")

    def require(self, *roles: Role) -> str:
        """Return the actor id, or raise if unauthenticated / not in `roles`."""
        if not self.is_authenticated:
            raise UnauthenticatedError()
        if roles and self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise ForbiddenError(f"Requires role: {allowed}")
        return self.actor_id


def parse_role(value: Optional[str]) -> Optional[Role]:
    if not value:
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def get_request_context(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> RequestContext:
    """FastAPI dependency — builds the caller's context from identity headers."""
    actor_id = x_user_id.strip() if x_user_id else None
    name = x_user_name.strip() if x_user_name else None
    return RequestContext(actor_id=actor_id or None, role=parse_role(x_user_role), display_name=name or None)

"""Caller identity and administrative scope checks.

Authentication happens upstream; by the time a request reaches the engine the
transport has resolved an :class:`Actor`. Scope follows the registry's role
hierarchy: ``admin`` sees everything, ``district`` sees one district and every
congregation in it, ``local`` sees a single congregation.
"""

import enum
from dataclasses import dataclass

from app.errors import AuthorizationError, ValidationError


class ActorRole(enum.Enum):
    admin = "admin"
    district = "district"
    local = "local"


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole
    district_code: str | None = None
    local_code: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    def has_scope(self, district_code: str, local_code: str | None = None) -> bool:
        if self.role == ActorRole.admin:
            return True
        if self.district_code != district_code:
            return False
        if self.role == ActorRole.district:
            return True
        return local_code is not None and self.local_code == local_code


def require_scope(actor: Actor, district_code: str, local_code: str | None) -> None:
    if not actor.has_scope(district_code, local_code):
        raise AuthorizationError(
            "Actor has no administrative scope over this congregation",
            details={"district_code": district_code, "local_code": local_code},
        )


def resolve_congregation(
    actor: Actor, district_code: str | None, local_code: str | None
) -> tuple[str, str]:
    """Default to the actor's own congregation, then check scope over the result."""
    district_code = district_code or actor.district_code
    local_code = local_code or actor.local_code
    if not district_code or not local_code:
        raise ValidationError("district_code and local_code are required")
    require_scope(actor, district_code, local_code)
    return district_code, local_code


def resolve_listing_scope(
    actor: Actor,
    district_code: str | None,
    local_code: str | None,
    district_required: bool = False,
) -> tuple[str | None, str | None]:
    """Narrow list filters to what the actor may see.

    District and local actors are pinned to their own district (and
    congregation); admins may leave either filter open.
    """
    if actor.role == ActorRole.local:
        district_code = district_code or actor.district_code
        local_code = local_code or actor.local_code
    elif actor.role == ActorRole.district:
        district_code = district_code or actor.district_code
    if district_required and not district_code:
        raise ValidationError("district_code is required")
    if district_code is not None:
        require_scope(actor, district_code, local_code)
    return district_code, local_code

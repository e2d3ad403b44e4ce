from collections.abc import Generator

from fastapi import Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.services.scope import Actor, ActorRole


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _unauthenticated(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "unauthenticated", "message": message, "details": None},
    )


def get_actor(
    request: Request,
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    x_district_code: str | None = Header(default=None),
    x_local_code: str | None = Header(default=None),
) -> Actor:
    """Build the caller identity resolved by the upstream gateway."""
    if not x_actor_id:
        raise _unauthenticated("Missing X-Actor-Id header")
    try:
        role = ActorRole((x_actor_role or "").strip().lower())
    except ValueError:
        raise _unauthenticated("Unknown actor role")
    if role != ActorRole.admin and not x_district_code:
        raise _unauthenticated("X-District-Code is required for this role")
    if role == ActorRole.local and not x_local_code:
        raise _unauthenticated("X-Local-Code is required for this role")
    return Actor(
        id=x_actor_id,
        role=role,
        district_code=x_district_code,
        local_code=x_local_code,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

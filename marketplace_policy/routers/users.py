"""Users router - role administration."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.user import RoleChange, UserRead
from marketplace_policy.services import user_service

router = APIRouter()


@router.patch("/{user_id}/role", response_model=UserRead)
def change_role(
    user_id: UUID,
    data: RoleChange,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Change another user's role (admin only; never one's own)."""
    try:
        return user_service.change_user_role(db, principal, user_id, data.role)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

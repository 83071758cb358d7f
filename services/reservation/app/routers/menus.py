from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth_dependencies import TokenPayload, get_current_token, require_admin
from app.core.database import get_db
from app.schemas.menu_schema import MenuCreate, MenuRead
from . import schedule_crud

router = APIRouter(prefix="/orgs/{org_id}/menus", tags=["Menus"])


@router.post("", response_model=MenuRead, status_code=201)
def create_menu(
    payload: MenuCreate,
    org_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(require_admin),
):
    return schedule_crud.create_menu(db, current_token.tenant_id, org_id, payload)


@router.get("", response_model=List[MenuRead])
def list_menus(
    org_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
):
    return schedule_crud.list_menus(db, current_token.tenant_id, org_id)

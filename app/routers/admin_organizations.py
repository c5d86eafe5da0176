from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import BadRequestError, NotFoundError
from app.deps import require_super_admin
from app.models.organization import Organization
from app.services.audit import log_action
from app.services.sessions import Identity

router = APIRouter(prefix="/api/admin/organizations", tags=["admin-organizations"])

SUBSCRIPTION_STATUSES = ("trial", "active", "past_due", "canceled")


class OrganizationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    logo_url: Optional[str] = Field(None, alias="logoUrl")
    max_employees: Optional[int] = Field(None, alias="maxEmployees", ge=1, le=1000)


class OrganizationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    logo_url: Optional[str] = Field(None, alias="logoUrl")
    max_employees: Optional[int] = Field(None, alias="maxEmployees", ge=1, le=1000)
    subscription_status: Optional[str] = Field(None, alias="subscriptionStatus")
    is_active: Optional[bool] = Field(None, alias="isActive")


class OrganizationRead(BaseModel):
    id: int
    name: str
    address: Optional[str]
    neighborhood: Optional[str]
    logo_url: Optional[str]
    subscription_status: str
    max_employees: Optional[int]
    goals: Optional[List[str]]
    is_active: bool
    created_at: datetime
    updated_at: datetime


def _serialize(organization: Organization) -> Dict[str, Any]:
    return {
        "id": organization.id,
        "name": organization.name,
        "address": organization.address,
        "neighborhood": organization.neighborhood,
        "logo_url": organization.logo_url,
        "subscription_status": organization.subscription_status,
        "max_employees": organization.max_employees,
        "goals": organization.goals,
        "is_active": organization.is_active,
        "created_at": organization.created_at,
        "updated_at": organization.updated_at,
    }


def _get_or_404(db: Session, organization_id: int) -> Organization:
    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if organization is None:
        raise NotFoundError("Organization not found", error_code="organization_not_found")
    return organization


@router.get("", response_model=List[OrganizationRead])
def list_organizations(
    _admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    organizations = db.query(Organization).order_by(Organization.created_at.desc(), Organization.id.desc()).all()
    return [_serialize(organization) for organization in organizations]


@router.post("", response_model=OrganizationRead, status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: OrganizationCreate,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    organization = Organization(
        name=payload.name.strip(),
        address=payload.address,
        neighborhood=payload.neighborhood,
        logo_url=payload.logo_url,
        max_employees=payload.max_employees,
        is_active=True,
    )
    db.add(organization)
    db.flush()

    log_action(
        db,
        actor_id=admin.user_id,
        action="CREATE_ORGANIZATION",
        subject=f"organization:{organization.id}",
        details={"name": organization.name},
    )
    db.commit()
    db.refresh(organization)
    return _serialize(organization)


@router.get("/{organization_id}", response_model=OrganizationRead)
def get_organization(
    organization_id: int,
    _admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return _serialize(_get_or_404(db, organization_id))


@router.patch("/{organization_id}", response_model=OrganizationRead)
def update_organization(
    organization_id: int,
    payload: OrganizationUpdate,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    organization = _get_or_404(db, organization_id)
    updates = payload.model_dump(exclude_unset=True)

    if "subscription_status" in updates and updates["subscription_status"] not in SUBSCRIPTION_STATUSES:
        raise BadRequestError("Invalid subscription status", error_code="invalid_subscription_status")

    for field, value in updates.items():
        if field in {"name", "subscription_status", "is_active"} and value is None:
            continue
        setattr(organization, field, value)

    log_action(
        db,
        actor_id=admin.user_id,
        action="UPDATE_ORGANIZATION",
        subject=f"organization:{organization.id}",
        details={"updates": updates},
    )
    db.commit()
    db.refresh(organization)
    return _serialize(organization)


@router.delete("/{organization_id}")
def delete_organization(
    organization_id: int,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    organization = _get_or_404(db, organization_id)
    db.delete(organization)
    log_action(
        db,
        actor_id=admin.user_id,
        action="DELETE_ORGANIZATION",
        subject=f"organization:{organization_id}",
        details={"id": organization_id, "name": organization.name},
    )
    db.commit()
    return {"success": True}

"""Address book endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from shop.api.deps import get_current_user
from shop.core.errors import NotFoundOrUnauthorized
from shop.db.session import get_db
from shop.models import User, UserAddress
from shop.schemas.account import AddressCreate, AddressUpdate
from shop.services.user_service import get_owned_address, make_default_address

router: APIRouter = APIRouter()


def serialize_address(address: UserAddress) -> dict[str, Any]:
    return {
        "id": address.id,
        "title": address.title,
        "recipientName": address.recipient_name,
        "recipientPhone": address.recipient_phone,
        "country": address.country,
        "province": address.province,
        "city": address.city,
        "district": address.district,
        "streetAddress": address.street_address,
        "postalCode": address.postal_code,
        "isDefault": address.is_default,
    }


def _owned_or_404(db: Session, user: User, address_id: int) -> UserAddress:
    address = get_owned_address(db, user, address_id)
    if address is None:
        raise NotFoundOrUnauthorized("Address not found or unauthorized")
    return address


@router.get("")
def list_addresses(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> list[dict[str, Any]]:
    rows = db.scalars(
        select(UserAddress)
        .where(UserAddress.user_id == current_user.id)
        .order_by(UserAddress.is_default.desc(), UserAddress.id)
    ).all()
    return [serialize_address(address) for address in rows]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    address = UserAddress(user_id=current_user.id, **payload.model_dump(exclude={"is_default"}))
    db.add(address)
    db.flush()
    has_default = db.scalar(
        select(UserAddress.id).where(UserAddress.user_id == current_user.id, UserAddress.is_default.is_(True)).limit(1)
    )
    if payload.is_default or has_default is None:
        make_default_address(db, current_user, address)
    db.commit()
    db.refresh(address)
    return serialize_address(address)


@router.put("/{address_id}")
def update_address(
    address_id: int,
    payload: AddressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    address = _owned_or_404(db, current_user, address_id)
    changes = payload.model_dump(exclude_unset=True)
    make_default = changes.pop("is_default", None)
    for field, value in changes.items():
        setattr(address, field, value)
    if make_default:
        make_default_address(db, current_user, address)
    db.commit()
    db.refresh(address)
    return serialize_address(address)


@router.delete("/{address_id}")
def delete_address(
    address_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    address = _owned_or_404(db, current_user, address_id)
    db.delete(address)
    db.commit()
    return {"message": "Address deleted"}


@router.post("/{address_id}/default")
def set_default_address(
    address_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    address = _owned_or_404(db, current_user, address_id)
    make_default_address(db, current_user, address)
    db.commit()
    db.refresh(address)
    return serialize_address(address)

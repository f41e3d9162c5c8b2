from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from readyset.auth.dependencies import AuthContext
from readyset.models.address import Address, UserAddress
from readyset.observability import log_event
from readyset.schemas.address import (
    AddressCounts,
    AddressCreate,
    AddressFilter,
    AddressListResponse,
    AddressPagination,
    AddressResponse,
    AddressUpdate,
)

SEARCH_MIN_LENGTH = 2
_WHITESPACE_RE = re.compile(r"\s+")
_NON_NULL_FIELDS = frozenset({"street1", "city", "state", "zip", "is_restaurant", "is_shared"})


@dataclass(frozen=True)
class NormalizedAddress:
    street1: str
    city: str
    state: str
    zip: str


def _clean(value: str | None) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", value or "").strip()
    return collapsed.rstrip(".").strip()


def normalize_address(
    street1: str | None, city: str | None, state: str | None, zip_code: str | None
) -> NormalizedAddress:
    """Canonical form used to spot the same address typed twice."""
    return NormalizedAddress(
        street1=_clean(street1),
        city=_clean(city),
        state=_clean(state).upper(),
        zip=(zip_code or "").strip()[:5],
    )


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _internal_error(message: str, err: SQLAlchemyError) -> HTTPException:
    log_event(message, level=logging.ERROR, exc_info=err)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


def _can_manage(auth: AuthContext, address: Address) -> bool:
    return address.created_by == auth.user_id or auth.is_admin


def _find_active(db: Session, address_id: str) -> Address | None:
    return db.scalar(select(Address).where(Address.id == address_id, Address.deleted_at.is_(None)))


def get_address(db: Session, auth: AuthContext, address_id: str) -> AddressResponse:
    try:
        address = _find_active(db, address_id)
    except SQLAlchemyError as err:
        raise _internal_error("Failed to fetch addresses", err) from err

    if address is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address not found")
    if not address.is_shared and address.created_by != auth.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized to access this address"
        )
    return AddressResponse.model_validate(address)


def _filter_condition(user_id: str, address_filter: AddressFilter):
    not_deleted = Address.deleted_at.is_(None)
    if address_filter == "shared":
        return and_(not_deleted, Address.is_shared.is_(True))
    if address_filter == "private":
        return and_(not_deleted, Address.created_by == user_id, Address.is_shared.is_(False))
    return and_(not_deleted, or_(Address.is_shared.is_(True), Address.created_by == user_id))


def _search_condition(search: str):
    return or_(
        Address.name.icontains(search, autoescape=True),
        Address.street1.icontains(search, autoescape=True),
        Address.city.icontains(search, autoescape=True),
        Address.county.icontains(search, autoescape=True),
        Address.location_number.icontains(search, autoescape=True),
    )


def _count(db: Session, condition) -> int:
    return db.scalar(select(func.count()).select_from(Address).where(condition)) or 0


def list_addresses(
    db: Session,
    auth: AuthContext,
    *,
    address_filter: AddressFilter,
    page: int,
    limit: int,
    search: str,
) -> AddressListResponse:
    condition = _filter_condition(auth.user_id, address_filter)
    search = search.strip()
    if len(search) >= SEARCH_MIN_LENGTH:
        condition = and_(condition, _search_condition(search))

    try:
        rows = db.scalars(
            select(Address)
            .where(condition)
            .order_by(Address.created_at.desc(), Address.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        total_count = _count(db, condition)
        counts = AddressCounts(
            all=_count(db, _filter_condition(auth.user_id, "all")),
            shared=_count(db, _filter_condition(auth.user_id, "shared")),
            private=_count(db, _filter_condition(auth.user_id, "private")),
        )
    except SQLAlchemyError as err:
        raise _internal_error("Failed to fetch addresses", err) from err

    total_pages = math.ceil(total_count / limit)
    return AddressListResponse(
        addresses=[AddressResponse.model_validate(row) for row in rows],
        pagination=AddressPagination(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
            limit=limit,
        ),
        counts=counts,
    )


def validate_address(payload: AddressCreate) -> list[str]:
    errors: list[str] = []
    if not (payload.street1 or "").strip():
        errors.append("Street address is required")
    if not (payload.city or "").strip():
        errors.append("City is required")
    if not (payload.state or "").strip():
        errors.append("State is required")
    if not (payload.zip or "").strip():
        errors.append("ZIP code is required")
    if not (payload.county or "").strip():
        errors.append("County is required")
    return errors


def find_duplicate(db: Session, normalized: NormalizedAddress) -> Address | None:
    return db.scalar(
        select(Address)
        .where(
            Address.deleted_at.is_(None),
            func.lower(Address.street1) == normalized.street1.lower(),
            func.lower(Address.city) == normalized.city.lower(),
            func.upper(Address.state) == normalized.state,
            Address.zip.startswith(normalized.zip, autoescape=True),
        )
        .order_by(Address.created_at)
        .limit(1)
    )


def create_address(
    db: Session, auth: AuthContext, payload: AddressCreate
) -> tuple[AddressResponse, bool]:
    """Create an address, or return the existing one typed the same way.

    Returns the address and whether it was newly created.
    """
    errors = validate_address(payload)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Validation failed", "details": errors},
        )

    normalized = normalize_address(payload.street1, payload.city, payload.state, payload.zip)
    try:
        existing = find_duplicate(db, normalized)
        if existing is not None:
            return AddressResponse.model_validate(existing), False

        address = Address(
            name=_optional(payload.name),
            street1=payload.street1.strip(),
            street2=_optional(payload.street2),
            city=payload.city.strip(),
            state=payload.state.strip().upper(),
            zip=payload.zip.strip(),
            county=payload.county.strip(),
            latitude=payload.latitude,
            longitude=payload.longitude,
            location_number=_optional(payload.location_number),
            parking_loading=_optional(payload.parking_loading),
            is_restaurant=payload.is_restaurant,
            is_shared=payload.is_shared,
            created_by=auth.user_id,
        )
        db.add(address)
        db.flush()
        if not payload.is_shared:
            db.add(UserAddress(user_id=auth.user_id, address_id=address.id, is_default=False))
        db.commit()
        db.refresh(address)
    except IntegrityError as err:
        db.rollback()
        log_event("Address create conflict", level=logging.WARNING, exc_info=err)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An address with these details already exists",
        ) from err
    except SQLAlchemyError as err:
        db.rollback()
        raise _internal_error("Failed to create address. Please try again.", err) from err

    return AddressResponse.model_validate(address), True


def _load_manageable(
    db: Session, auth: AuthContext, address_id: str | None, action: str
) -> Address:
    if not address_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Address ID is required"
        )

    address = _find_active(db, address_id)
    if address is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address not found")
    if not _can_manage(auth, address):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=f"Unauthorized to {action} this address"
        )
    return address


def update_address(
    db: Session, auth: AuthContext, address_id: str | None, payload: AddressUpdate
) -> AddressResponse:
    try:
        address = _load_manageable(db, auth, address_id, "update")
        was_shared = address.is_shared

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is None and field in _NON_NULL_FIELDS:
                continue
            setattr(address, field, value)

        if payload.is_shared is False and was_shared:
            # Unsharing keeps the address visible to its owner
            link = db.scalar(
                select(UserAddress).where(
                    UserAddress.user_id == auth.user_id, UserAddress.address_id == address.id
                )
            )
            if link is None:
                db.add(UserAddress(user_id=auth.user_id, address_id=address.id, is_default=False))

        db.commit()
        db.refresh(address)
    except SQLAlchemyError as err:
        db.rollback()
        raise _internal_error("Failed to update address", err) from err

    return AddressResponse.model_validate(address)


def delete_address(db: Session, auth: AuthContext, address_id: str | None) -> None:
    try:
        address = _load_manageable(db, auth, address_id, "delete")
        # Soft delete; orders still reference the row
        address.deleted_at = datetime.now(timezone.utc)
        db.execute(delete(UserAddress).where(UserAddress.address_id == address.id))
        db.commit()
    except SQLAlchemyError as err:
        db.rollback()
        raise _internal_error("Failed to delete address", err) from err

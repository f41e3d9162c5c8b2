from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from readyset.auth.dependencies import AuthContext, get_auth_context, rate_limit_addresses
from readyset.db.session import get_db
from readyset.routers.rate_limit_headers import (
    ADDRESS_CACHE_HEADERS,
    ADDRESS_DETAIL_CACHE_CONTROL_VALUE,
    ADDRESS_LIST_CACHE_CONTROL_VALUE,
    RATE_LIMIT_THROTTLED_HEADERS,
    apply_address_cache_headers,
)
from readyset.schemas.address import (
    AddressCreate,
    AddressDeleteResponse,
    AddressListResponse,
    AddressResponse,
    AddressUpdate,
)
from readyset.schemas.common import error_responses
from readyset.services.addresses_service import (
    create_address,
    delete_address,
    get_address,
    list_addresses,
    update_address,
)

router = APIRouter(
    prefix="/api/addresses",
    tags=["addresses"],
    dependencies=[Depends(rate_limit_addresses)],
    responses={
        **error_responses(400, 401, 403, 404, 500),
        429: {**error_responses(429)[429], "headers": RATE_LIMIT_THROTTLED_HEADERS},
    },
)

ADDRESS_FILTERS = ("all", "shared", "private")
DEFAULT_PAGE_SIZE = 5


@router.get(
    "",
    response_model=AddressListResponse | AddressResponse,
    summary="Get one address by id, or a page of visible addresses",
    responses={200: {"headers": ADDRESS_CACHE_HEADERS}},
)
def get_addresses_endpoint(
    response: Response,
    db: Session = Depends(get_db),
    address_id: str | None = Query(default=None, alias="id"),
    address_filter: str = Query(default="all", alias="filter"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=100),
    search: str = Query(default=""),
    auth: AuthContext = Depends(get_auth_context),
) -> AddressListResponse | AddressResponse:
    if address_id:
        address = get_address(db, auth, address_id)
        apply_address_cache_headers(
            response,
            etag=f'"{auth.user_id}-{address_id}"',
            cache_control=ADDRESS_DETAIL_CACHE_CONTROL_VALUE,
        )
        return address

    if address_filter not in ADDRESS_FILTERS:
        address_filter = "all"
    search = search.strip()
    listing = list_addresses(
        db,
        auth,
        address_filter=address_filter,
        page=page,
        limit=limit,
        search=search,
    )
    apply_address_cache_headers(
        response,
        etag=f'"{auth.user_id}-{address_filter}-{page}-{limit}-{search}"',
        cache_control=ADDRESS_LIST_CACHE_CONTROL_VALUE,
    )
    return listing


@router.post(
    "",
    response_model=AddressResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an address (returns the existing one for duplicates)",
    responses={
        200: {"description": "Matching address already exists", "model": AddressResponse},
        **error_responses(409),
    },
)
def create_address_endpoint(
    payload: AddressCreate,
    response: Response,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> AddressResponse:
    address, created = create_address(db, auth, payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return address


@router.put("", response_model=AddressResponse, summary="Update an address")
def update_address_endpoint(
    payload: AddressUpdate,
    db: Session = Depends(get_db),
    address_id: str | None = Query(default=None, alias="id"),
    auth: AuthContext = Depends(get_auth_context),
) -> AddressResponse:
    return update_address(db, auth, address_id, payload)


@router.delete("", response_model=AddressDeleteResponse, summary="Soft delete an address")
def delete_address_endpoint(
    db: Session = Depends(get_db),
    address_id: str | None = Query(default=None, alias="id"),
    auth: AuthContext = Depends(get_auth_context),
) -> AddressDeleteResponse:
    delete_address(db, auth, address_id)
    return AddressDeleteResponse()

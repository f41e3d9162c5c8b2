from readyset.schemas.address import AddressCreate
from readyset.services.addresses_service import normalize_address, validate_address


def test_normalize_address_collapses_whitespace_and_trailing_period():
    normalized = normalize_address("  12   Main St. ", " Oakland ", " ca ", "94607-1234")

    assert normalized.street1 == "12 Main St"
    assert normalized.city == "Oakland"
    assert normalized.state == "CA"
    assert normalized.zip == "94607"


def test_normalize_address_handles_missing_values():
    normalized = normalize_address(None, None, None, None)

    assert normalized.street1 == ""
    assert normalized.zip == ""


def test_validate_address_lists_each_missing_field():
    errors = validate_address(AddressCreate(street1="1 Market St", city="  ", zip="94105"))

    assert errors == ["City is required", "State is required", "County is required"]

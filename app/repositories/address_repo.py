# app/repositories/address_repo.py
from urllib.parse import quote

from app.core.api_client import ApiSession, unwrap
from app.models.order import Address
from app.schemas.upstream import AddressPayload, AddressWrite

PREFIX = "/user/addresses"

ADDRESS_TYPES = {"home", "work", "other"}


def to_address(raw: AddressPayload) -> Address:
    address_type = (raw.address_type or "home").lower()
    return Address(
        id=raw.id,
        name=raw.name,
        phone_number=raw.phone_number,
        address_line1=raw.address_line1,
        address_line2=raw.address_line2,
        city=raw.city,
        state=raw.state or "",
        postal_code=raw.postal_code,
        address_type=address_type if address_type in ADDRESS_TYPES else "other",
        is_default=raw.is_default,
    )


class AddressRepository:
    """
    Data access layer for the shopper's upstream address book.
    """

    def list(self, api: ApiSession) -> list[Address]:
        data = unwrap(api.get(PREFIX), "Failed to load addresses")
        return [to_address(AddressPayload.model_validate(it)) for it in data or []]

    def create(self, api: ApiSession, payload: AddressWrite) -> Address:
        body = payload.model_dump(by_alias=True, exclude_none=True)
        data = unwrap(api.post(PREFIX, body), "Failed to save address")
        return to_address(AddressPayload.model_validate(data))

    def set_default(self, api: ApiSession, address_id: str) -> Address:
        data = unwrap(
            api.post(f"{PREFIX}/{quote(address_id, safe='')}/default", {}),
            "Failed to update default address",
        )
        return to_address(AddressPayload.model_validate(data))

"""
Address routes.
Saved shipping addresses, keyed by the signed-in user's email.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ..dependencies import get_current_user_email, get_sanity_client
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.address import AddressRequest
from ...clients import SanityClient, build_patch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/addresses", tags=["Addresses"])

ADDRESSES_QUERY = (
    '*[_type == "address" && email == $email] | order(default desc, createdAt desc)'
)
ADDRESS_QUERY = '*[_type == "address" && _id == $addressId && email == $email][0]'


async def _clear_default(sanity: SanityClient, email: str, keep_id: str = None) -> None:
    """Unset ``default`` on the user's other addresses in one transaction."""
    existing = await sanity.fetch(ADDRESSES_QUERY, {"email": email}) or []
    mutations = [
        build_patch(a["_id"], set={"default": False})
        for a in existing
        if a["_id"] != keep_id and a.get("default")
    ]
    if mutations:
        await sanity.transaction(mutations)


@router.get("")
async def list_addresses(
    email: str = Depends(get_current_user_email),
    sanity: SanityClient = Depends(get_sanity_client),
) -> Dict[str, List[Dict[str, Any]]]:
    addresses = await sanity.fetch(ADDRESSES_QUERY, {"email": email})
    return {"addresses": addresses or []}


@router.post("")
async def create_address(
    body: AddressRequest,
    email: str = Depends(get_current_user_email),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """
    Save a new address.

    When ``isDefault`` is set, every other address of the user loses its
    default flag first.
    """
    if body.missing_required():
        raise InvalidRequestError("All fields are required")

    if body.is_default:
        await _clear_default(sanity, email)

    created = await sanity.create(
        {
            "_type": "address",
            "name": body.name.strip(),
            "email": email,
            "address": body.address.strip(),
            "city": body.city.strip(),
            "state": body.state.strip().upper(),
            "zip": body.zip.strip(),
            "phone": body.phone,
            "default": body.is_default,
            "createdAt": datetime.utcnow().isoformat() + "Z",
        }
    )

    logger.info(f"Address {created.get('_id')} created for {email}")
    return {
        "success": True,
        "addressId": created.get("_id"),
        "message": "Address created successfully",
    }


@router.put("/{address_id}")
async def update_address(
    address_id: str,
    body: AddressRequest,
    email: str = Depends(get_current_user_email),
    sanity: SanityClient = Depends(get_sanity_client),
):
    existing = await sanity.fetch(ADDRESS_QUERY, {"addressId": address_id, "email": email})
    if not existing:
        raise ResourceNotFoundError("Address", address_id)
    if body.missing_required():
        raise InvalidRequestError("All fields are required")

    if body.is_default:
        await _clear_default(sanity, email, keep_id=address_id)

    updated = await sanity.patch(
        address_id,
        set={
            "name": body.name.strip(),
            "address": body.address.strip(),
            "city": body.city.strip(),
            "state": body.state.strip().upper(),
            "zip": body.zip.strip(),
            "phone": body.phone,
            "default": body.is_default,
        },
    )
    return {"success": True, "address": updated, "message": "Address updated successfully"}


@router.delete("/{address_id}")
async def delete_address(
    address_id: str,
    email: str = Depends(get_current_user_email),
    sanity: SanityClient = Depends(get_sanity_client),
):
    existing = await sanity.fetch(ADDRESS_QUERY, {"addressId": address_id, "email": email})
    if not existing:
        raise ResourceNotFoundError("Address", address_id)

    await sanity.delete(address_id)
    return {"success": True, "message": "Address deleted successfully"}

"""
Address book. A user may keep any number of addresses; every lookup is
scoped to the owner.
"""
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, serialize_doc, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from logger import get_logger
from schemas import Address, AddressInput, AddressUpdate

logger = get_logger("addresses")


def present_address(doc: dict) -> dict:
    data = serialize_doc(doc)
    # clients reference addresses by this name when placing orders
    data["userAddressId"] = data["id"]
    return data


class AddressService:
    def __init__(self, db: Database):
        self.collection = db["address"]

    def _owned(self, user_id: str, address_id: str) -> dict:
        return {"_id": to_object_id(address_id, "address ID"), "userId": user_id}

    def add(self, user_id: str, payload: AddressInput) -> dict:
        address = Address(userId=user_id, **payload.model_dump())
        address_id = create_document(self.collection.database, "address", address.model_dump())
        logger.info("Added address %s for user %s", address_id, user_id)
        return self.get(user_id, address_id)

    def list_for_user(self, user_id: str) -> list:
        return [present_address(doc) for doc in self.collection.find({"userId": user_id}).sort("createdAt", 1)]

    def get(self, user_id: str, address_id: str) -> dict:
        doc = self.collection.find_one(self._owned(user_id, address_id))
        if not doc:
            raise NotFoundError("Address not found")
        return present_address(doc)

    def update(self, user_id: str, address_id: str, payload: AddressUpdate) -> dict:
        updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        if not updates:
            raise ValidationError("No address fields to update")
        updates["updatedAt"] = utcnow()
        doc = self.collection.find_one_and_update(
            self._owned(user_id, address_id),
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Address not found")
        logger.info("Updated address %s for user %s", address_id, user_id)
        return present_address(doc)

    def delete(self, user_id: str, address_id: str) -> None:
        result = self.collection.delete_one(self._owned(user_id, address_id))
        if not result.deleted_count:
            raise NotFoundError("Address not found")
        logger.info("Deleted address %s for user %s", address_id, user_id)

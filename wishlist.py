"""
Wishlist: one per user, a duplicate-free list of product references with the
time each was added.
"""
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from catalog import MAX_IMAGES, Catalog, paginate, present_product
from database import is_object_id, to_object_id, utcnow
from errors import DuplicateError, NotFoundError, ValidationError
from logger import get_logger
from schemas import Wishlist, WishlistEntry

logger = get_logger("wishlist")


def format_entry(product: dict, added_at) -> dict:
    data = present_product(product)
    data["images"] = list(data.get("images") or [])[:MAX_IMAGES]
    data["addedAt"] = added_at
    return data


class WishlistService:
    def __init__(self, db: Database, catalog: Catalog = None):
        self.collection = db["wishlist"]
        self.catalog = catalog or Catalog(db)

    @staticmethod
    def _check_id(product_id: str) -> str:
        if not product_id or not is_object_id(product_id):
            raise ValidationError("Invalid product ID format")
        # stored and compared as lower-case hex
        return str(to_object_id(product_id))

    def _entries(self, wishlist: dict) -> list:
        entries = wishlist.get("products", [])
        products = self.catalog.find_many(e["productId"] for e in entries)
        # products deleted from the catalog are skipped
        return [
            format_entry(products[e["productId"]], e.get("addedAt"))
            for e in entries if e["productId"] in products
        ]

    def add(self, user_id: str, product_id: str) -> dict:
        product_id = self._check_id(product_id)
        product = self.catalog.lookup(product_id)
        entry = WishlistEntry(productId=product_id, addedAt=utcnow()).model_dump()

        # push only when the product is not already listed
        result = self.collection.update_one(
            {"userId": user_id, "products.productId": {"$ne": product_id}},
            {"$push": {"products": entry}, "$set": {"updatedAt": utcnow()}},
        )
        if not result.matched_count:
            if self.collection.find_one({"userId": user_id}):
                raise DuplicateError("Product already in wishlist")
            try:
                wishlist = Wishlist(userId=user_id, products=[entry]).model_dump()
                wishlist["createdAt"] = wishlist["updatedAt"] = utcnow()
                self.collection.insert_one(wishlist)
            except DuplicateKeyError:
                # created concurrently; retry as a plain add
                return self.add(user_id, product_id)
        logger.info("Added product %s to wishlist of user %s", product_id, user_id)
        return {"product": format_entry(product, entry["addedAt"])}

    def get(self, user_id: str, page: int = 1, limit: int = 10) -> dict:
        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else 10
        wishlist = self.collection.find_one({"userId": user_id})
        entries = self._entries(wishlist) if wishlist else []
        skip = (page - 1) * limit
        return {
            "products": entries[skip:skip + limit],
            "pagination": paginate(len(entries), page, limit),
        }

    def remove(self, user_id: str, product_id: str) -> dict:
        product_id = self._check_id(product_id)
        wishlist = self.collection.find_one_and_update(
            {"userId": user_id},
            {"$pull": {"products": {"productId": product_id}}, "$set": {"updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not wishlist:
            raise NotFoundError("Wishlist not found")
        logger.info("Removed product %s from wishlist of user %s", product_id, user_id)
        return {"wishlist": {"products": self._entries(wishlist)}}

    def clear(self, user_id: str) -> dict:
        wishlist = self.collection.find_one_and_update(
            {"userId": user_id},
            {"$set": {"products": [], "updatedAt": utcnow()}},
        )
        if not wishlist:
            raise NotFoundError("Wishlist not found")
        logger.info("Cleared wishlist of user %s", user_id)
        return {"wishlist": {"products": []}}

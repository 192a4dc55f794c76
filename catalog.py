"""
Product catalog: lookup for cart/wishlist snapshots plus admin CRUD.
"""
import math
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, serialize_doc, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from logger import get_logger
from schemas import Product, ProductUpdate

logger = get_logger("catalog")

MAX_IMAGES = 3


def format_price(price) -> str:
    return f"₹{float(price or 0):.2f}"


def present_product(doc: dict) -> dict:
    product = serialize_doc(doc)
    product["formattedPrice"] = format_price(product.get("price"))
    return product


def paginate(total_items: int, page: int, limit: int) -> dict:
    return {
        "totalItems": total_items,
        "totalPages": math.ceil(total_items / limit) if limit else 0,
        "currentPage": page,
        "pageSize": limit,
    }


def _csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


class Catalog:
    def __init__(self, db: Database):
        self.collection = db["product"]

    def lookup(self, product_id: str) -> dict:
        """Return the raw product document or raise NotFoundError."""
        doc = self.collection.find_one({"_id": to_object_id(product_id, "product ID")})
        if not doc:
            raise NotFoundError("Product not found")
        return doc

    def find_many(self, product_ids) -> dict:
        """Map of hex id -> product document for the ids that still exist."""
        oids = [to_object_id(pid, "product ID") for pid in set(product_ids)]
        if not oids:
            return {}
        return {str(p["_id"]): p for p in self.collection.find({"_id": {"$in": oids}})}

    def list_products(self, page: int = 1, limit: int = 10, category: Optional[str] = None,
                      min_price: Optional[float] = None, max_price: Optional[float] = None,
                      sizes: Optional[str] = None, brands: Optional[str] = None) -> dict:
        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else 10

        filt = {}
        if category:
            filt["category"] = category
        if min_price is not None or max_price is not None:
            filt["price"] = {}
            if min_price is not None:
                filt["price"]["$gte"] = min_price
            if max_price is not None:
                filt["price"]["$lte"] = max_price
        size_list = _csv(sizes)
        if size_list:
            filt["sizes"] = {"$in": size_list}
        brand_list = _csv(brands)
        if brand_list:
            filt["brand"] = {"$in": brand_list}

        total_items = self.collection.count_documents(filt)
        cursor = self.collection.find(filt).skip((page - 1) * limit).limit(limit)
        return {
            "products": [present_product(p) for p in cursor],
            "pagination": paginate(total_items, page, limit),
        }

    def get_product(self, product_id: str) -> dict:
        return present_product(self.lookup(product_id))

    def create_product(self, payload: Product) -> dict:
        product_id = create_document(self.collection.database, "product", payload.model_dump())
        logger.info("Created product %s (%s)", product_id, payload.name)
        return self.get_product(product_id)

    def update_product(self, product_id: str, payload: ProductUpdate) -> dict:
        updates = payload.model_dump(exclude_unset=True)
        if updates.get("price") is not None and updates["price"] < 0:
            raise ValidationError("Price cannot be negative")
        if "images" in updates and not updates["images"]:
            raise ValidationError("Product image is required")
        updates = {k: v for k, v in updates.items() if v is not None}
        updates["updatedAt"] = utcnow()
        doc = self.collection.find_one_and_update(
            {"_id": to_object_id(product_id, "product ID")},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Product not found")
        logger.info("Updated product %s", product_id)
        return present_product(doc)

    def delete_product(self, product_id: str) -> dict:
        doc = self.collection.find_one_and_delete({"_id": to_object_id(product_id, "product ID")})
        if not doc:
            raise NotFoundError("Product not found")
        logger.info("Deleted product %s", product_id)
        return {"id": str(doc["_id"]), "name": doc.get("name"), "price": doc.get("price")}


def snapshot(product: dict) -> dict:
    """Fields copied from the catalog into cart and order lines."""
    return {
        "price": float(product.get("price") or 0),
        "name": product.get("name", ""),
        "images": list(product.get("images") or [])[:MAX_IMAGES],
    }

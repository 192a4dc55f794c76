"""
Cart Consolidator.

One cart per user, created lazily on the first add. Lines are unique on
(productId, size): adding an existing pair increments its quantity. The
price/name/images snapshot on a line is refreshed from the catalog on every
add or update, never on read.

Writes are guarded by an optimistic ``version`` counter on the cart document;
a save that lost a race is retried from a fresh read.
"""
from typing import Callable, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from catalog import Catalog, snapshot
from database import is_object_id, serialize_doc, to_object_id, utcnow
from errors import ConflictError, NotFoundError, ValidationError
from logger import get_logger
from schemas import Cart, CartItem

logger = get_logger("cart")

MAX_WRITE_ATTEMPTS = 3


def _line_total(item: dict) -> float:
    return float(item.get("price") or 0) * int(item.get("quantity") or 0)


def present_cart(cart: dict, products: Optional[dict] = None) -> dict:
    """Serialize a cart, adding totalPrice per line and the cart subtotal.

    When ``products`` is given, each line also gets the current catalog
    document under ``product`` (None if it was removed from the catalog).
    """
    data = serialize_doc(cart)
    subtotal = 0.0
    for raw, item in zip(cart.get("items", []), data.get("items", [])):
        item["totalPrice"] = _line_total(raw)
        subtotal += item["totalPrice"]
        if products is not None:
            product = products.get(str(raw.get("productId")))
            item["product"] = serialize_doc(product) if product else None
    data["subtotal"] = subtotal
    data.pop("version", None)
    return data


class CartService:
    def __init__(self, db: Database, catalog: Optional[Catalog] = None):
        self.collection = db["cart"]
        self.catalog = catalog or Catalog(db)

    @staticmethod
    def _check_quantity(quantity) -> int:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Quantity must be a whole number of at least 1")
        return quantity

    @staticmethod
    def _find_line(cart: dict, product_id: str, size: str) -> int:
        for index, item in enumerate(cart.get("items", [])):
            if str(item.get("productId")) == product_id and item.get("size") == size:
                return index
        return -1

    def _load(self, user_id: str) -> dict:
        cart = self.collection.find_one({"userId": user_id})
        if not cart:
            raise NotFoundError("Cart not found.")
        return cart

    def _save(self, cart: dict) -> bool:
        """Write items back if nobody else has written since we read."""
        result = self.collection.update_one(
            {"_id": cart["_id"], "version": cart.get("version", 0)},
            {"$set": {"items": cart["items"], "updatedAt": utcnow()}, "$inc": {"version": 1}},
        )
        if result.matched_count:
            cart["version"] = cart.get("version", 0) + 1
            return True
        return False

    def _mutate(self, user_id: str, change: Callable[[dict], None]) -> dict:
        for attempt in range(MAX_WRITE_ATTEMPTS):
            cart = self._load(user_id)
            change(cart)
            if self._save(cart):
                return cart
            logger.info("Cart for user %s changed concurrently, retrying (%d)", user_id, attempt + 1)
        raise ConflictError("Cart was modified concurrently, please retry")

    def add_item(self, user_id: str, product_id: str, size: str, quantity: int) -> Tuple[dict, bool]:
        """Add or consolidate a line. Returns (cart, created)."""
        self._check_quantity(quantity)
        if not size:
            raise ValidationError("Product ID, quantity, and size are required.")
        product = self.catalog.lookup(product_id)
        product_id = str(product["_id"])

        for attempt in range(MAX_WRITE_ATTEMPTS):
            # catalog data is re-read per attempt so the snapshot is current
            fresh = snapshot(product) if attempt == 0 else snapshot(self.catalog.lookup(product_id))
            cart = self.collection.find_one({"userId": user_id})
            if cart is None:
                cart = Cart(userId=user_id).model_dump()
                cart["items"] = [self._new_line(product_id, size, quantity, fresh)]
                cart["createdAt"] = cart["updatedAt"] = utcnow()
                try:
                    cart["_id"] = self.collection.insert_one(cart).inserted_id
                except DuplicateKeyError:
                    continue
                logger.info("Created cart for user %s with product %s (%s)", user_id, product_id, size)
                return present_cart(cart), True

            index = self._find_line(cart, product_id, size)
            if index > -1:
                line = cart["items"][index]
                line["quantity"] = int(line.get("quantity", 0)) + quantity
                line.update(fresh)
            else:
                cart["items"].append(self._new_line(product_id, size, quantity, fresh))
            if self._save(cart):
                logger.info("Added %d x %s (%s) to cart of user %s", quantity, product_id, size, user_id)
                return present_cart(cart), False
        raise ConflictError("Cart was modified concurrently, please retry")

    @staticmethod
    def _new_line(product_id: str, size: str, quantity: int, fresh: dict) -> dict:
        line = CartItem(productId=product_id, quantity=quantity, size=size, **fresh).model_dump()
        line["_id"] = ObjectId()
        return line

    def get_cart(self, user_id: str) -> dict:
        cart = self._load(user_id)
        products = self.catalog.find_many(item["productId"] for item in cart.get("items", []))
        return present_cart(cart, products)

    def update_item_quantity(self, user_id: str, product_id: str, size: str, quantity: int) -> dict:
        self._check_quantity(quantity)
        if not product_id or not size:
            raise ValidationError("Invalid request data.")
        product_id = str(self.catalog.lookup(product_id)["_id"])

        def change(cart):
            index = self._find_line(cart, product_id, size)
            if index == -1:
                raise NotFoundError("Item not found in cart.")
            line = cart["items"][index]
            line["quantity"] = quantity
            line.update(snapshot(self.catalog.lookup(product_id)))

        cart = self._mutate(user_id, change)
        logger.info("Set quantity of %s (%s) to %d for user %s", product_id, size, quantity, user_id)
        return present_cart(cart)

    def remove_item(self, user_id: str, item_id: str, size: str) -> dict:
        if not item_id or not size:
            raise ValidationError("Item ID and size are required.")
        if not is_object_id(item_id):
            raise NotFoundError("Item not found in cart.")
        target = to_object_id(item_id)

        def change(cart):
            before = len(cart["items"])
            cart["items"] = [
                item for item in cart["items"]
                if not (item.get("_id") == target and item.get("size") == size)
            ]
            if len(cart["items"]) == before:
                raise NotFoundError("Item not found in cart.")

        cart = self._mutate(user_id, change)
        logger.info("Removed line %s (%s) from cart of user %s", item_id, size, user_id)
        return present_cart(cart)

    def clear(self, user_id: str) -> dict:
        # unconditional: clearing does not depend on what was read
        cart = self.collection.find_one_and_update(
            {"userId": user_id},
            {"$set": {"items": [], "updatedAt": utcnow()}, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if not cart:
            raise NotFoundError("Cart not found.")
        logger.info("Cleared cart of user %s", user_id)
        return present_cart(cart)

    def lines(self, user_id: str) -> list:
        """Raw cart lines for checkout; empty list if there is no cart."""
        cart = self.collection.find_one({"userId": user_id})
        return list(cart.get("items", [])) if cart else []

    def empty(self, user_id: str) -> None:
        """Drop all lines if the user has a cart; no-op otherwise."""
        self.collection.update_one(
            {"userId": user_id},
            {"$set": {"items": [], "updatedAt": utcnow()}, "$inc": {"version": 1}},
        )

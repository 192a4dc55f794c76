"""
Order Builder.

Orders are immutable snapshots of what was bought: item name, images, size,
quantity and price are copied in at creation time and the catalog is never
consulted again. Only orderStatus/paymentStatus change afterwards.
"""
import math
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from cart import CartService
from catalog import MAX_IMAGES, Catalog, snapshot
from database import serialize_doc, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from logger import get_logger
from schemas import Order, OrderItem, OrderItemInput, OrderStatus, PaymentStatus

logger = get_logger("orders")

REQUIRED_ITEM_FIELDS = ("productId", "name", "images", "size", "quantity", "price")


def _as_number(value, cast):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        return None
    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number


def _as_quantity(value):
    number = _as_number(value, float)
    if number is None or number != int(number):
        return None
    return int(number)


def build_order_items(items: List[OrderItemInput]) -> List[OrderItem]:
    """Validate client-sent lines and turn them into OrderItems.

    Raises ValidationError naming the 1-based position of the first bad line.
    """
    if not items:
        raise ValidationError("No items provided")

    order_items = []
    for position, item in enumerate(items, start=1):
        raw = item.model_dump()
        missing = [f for f in REQUIRED_ITEM_FIELDS if raw.get(f) in (None, "", [])]
        if missing:
            raise ValidationError(f"Missing item fields in item {position}: {', '.join(missing)}")

        quantity = _as_quantity(raw["quantity"])
        price = _as_number(raw["price"], float)
        if quantity is None or price is None:
            raise ValidationError(f"Invalid price or quantity in item {position}")
        if quantity < 1 or price < 0:
            raise ValidationError(f"Invalid price or quantity in item {position}")

        order_items.append(OrderItem(
            productId=str(raw["productId"]),
            name=raw["name"],
            images=list(raw["images"])[:MAX_IMAGES],
            size=raw["size"],
            quantity=quantity,
            price=price,
        ))
    return order_items


def order_total(items: List[OrderItem]) -> float:
    return sum(item.quantity * item.price for item in items)


def present_order(doc: dict, address: Optional[dict] = None, user: Optional[dict] = None) -> dict:
    data = serialize_doc(doc)
    for item in data.get("items", []):
        if not item.get("price"):
            item["price"] = 0
    if address is not None:
        data["address"] = serialize_doc(address)
    if user is not None:
        data["user"] = {"id": str(user["_id"]), "username": user.get("username"), "email": user.get("email")}
    return data


class OrderService:
    def __init__(self, db: Database, carts: Optional[CartService] = None, catalog: Optional[Catalog] = None):
        self.db = db
        self.collection = db["order"]
        self.catalog = catalog or Catalog(db)
        self.carts = carts or CartService(db, self.catalog)

    def _address_for(self, user_id: str, address_id: str) -> dict:
        address = self.db["address"].find_one({
            "_id": to_object_id(address_id, "address ID"),
            "userId": user_id,
        })
        if not address:
            raise NotFoundError("Address not found")
        return address

    def create_order(self, user_id: str, address_id: str, transaction_id: str,
                     payment_status: PaymentStatus, order_status: OrderStatus,
                     items: List[OrderItemInput]) -> dict:
        order_items = build_order_items(items)
        return self._persist(user_id, address_id, transaction_id, payment_status, order_status, order_items)

    def checkout(self, user_id: str, address_id: str, transaction_id: str,
                 payment_status: PaymentStatus, order_status: OrderStatus) -> dict:
        """Build the order from the server-held cart at current catalog prices."""
        lines = self.carts.lines(user_id)
        if not lines:
            raise ValidationError("Cart is empty")
        products = self.catalog.find_many(line["productId"] for line in lines)
        order_items = []
        for line in lines:
            product = products.get(str(line["productId"]))
            if product is None:
                raise NotFoundError(f"Product {line['productId']} is no longer available")
            order_items.append(OrderItem(
                productId=str(line["productId"]),
                size=line["size"],
                quantity=int(line["quantity"]),
                **snapshot(product),
            ))
        return self._persist(user_id, address_id, transaction_id, payment_status, order_status, order_items)

    def _persist(self, user_id, address_id, transaction_id, payment_status, order_status, order_items) -> dict:
        address = self._address_for(user_id, address_id)
        order = Order(
            userId=user_id,
            userAddressId=str(address["_id"]),
            items=order_items,
            totalAmount=order_total(order_items),
            transactionId=transaction_id,
            paymentStatus=payment_status,
            orderStatus=order_status,
            createdAt=utcnow(),
        )
        doc = order.model_dump()
        doc["userAddressId"] = address["_id"]
        doc["_id"] = self.collection.insert_one(doc).inserted_id
        logger.info("Created order %s for user %s, total %.2f", doc["_id"], user_id, doc["totalAmount"])

        # The order stands even if emptying the cart fails; the cart can be
        # cleared again later without side effects.
        try:
            self.carts.empty(user_id)
        except PyMongoError:
            logger.exception("Order %s created but clearing the cart of user %s failed", doc["_id"], user_id)
        return present_order(doc, address)

    def _joined(self, doc: dict, with_user: bool = False) -> dict:
        address = self.db["address"].find_one({"_id": doc.get("userAddressId")})
        user = None
        if with_user:
            try:
                user = self.db["user"].find_one({"_id": to_object_id(doc.get("userId"))})
            except ValidationError:
                user = None
        return present_order(doc, address, user)

    def _find(self, order_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(order_id, "order ID")})
        if not doc:
            raise NotFoundError("Order not found")
        return doc

    def get_order(self, order_id: str) -> dict:
        return self._joined(self._find(order_id), with_user=True)

    def raw_order(self, order_id: str) -> dict:
        """Order plus its address and user documents, for invoice rendering."""
        doc = self._find(order_id)
        address = self.db["address"].find_one({"_id": doc.get("userAddressId")})
        user = self.db["user"].find_one({"_id": to_object_id(doc.get("userId"))})
        return {"order": doc, "address": address, "user": user}

    def list_orders(self) -> list:
        return [self._joined(doc, with_user=True) for doc in self.collection.find().sort("createdAt", -1)]

    def list_orders_for_user(self, user_id: str) -> list:
        cursor = self.collection.find({"userId": user_id}).sort("createdAt", -1)
        return [self._joined(doc) for doc in cursor]

    def update_status(self, order_id: str, order_status: Optional[OrderStatus],
                      payment_status: Optional[PaymentStatus]) -> dict:
        updates = {}
        if order_status is not None:
            updates["orderStatus"] = OrderStatus(order_status).value
        if payment_status is not None:
            updates["paymentStatus"] = PaymentStatus(payment_status).value
        if not updates:
            raise ValidationError("orderStatus or paymentStatus is required")
        updates["updatedAt"] = utcnow()
        doc = self.collection.find_one_and_update(
            {"_id": to_object_id(order_id, "order ID")},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Order not found")
        logger.info("Order %s status updated: %s", order_id, updates)
        return self._joined(doc)

    def delete_order(self, order_id: str) -> None:
        result = self.collection.delete_one({"_id": to_object_id(order_id, "order ID")})
        if not result.deleted_count:
            raise NotFoundError("Order not found")
        logger.info("Deleted order %s", order_id)

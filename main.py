from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pymongo.database import Database
from pymongo.errors import PyMongoError

from addresses import AddressService
from auth import AuthService, get_current_user_id
from cart import CartService
from catalog import Catalog
from config import Settings
from database import connect, ensure_indexes
from errors import AppError, ValidationError, failure, success
from invoice import render_invoice
from logger import get_logger, set_level
from mailer import ResendMailer
from orders import OrderService
from payments import RazorpayGateway
from schemas import (
    AddressInput,
    AddressUpdate,
    CartItemRequest,
    CheckoutRequest,
    CreateOrderRequest,
    ForgotPasswordRequest,
    LoginRequest,
    PaymentOrderRequest,
    PaymentVerifyRequest,
    Product,
    ProductUpdate,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdateOrderRequest,
    WishlistAddRequest,
)
from security import TokenSigner
from wishlist import WishlistService

logger = get_logger("api")


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None,
               mailer=None, gateway=None) -> FastAPI:
    """Build the API. Collaborators not passed in are created from settings."""
    settings = settings or Settings.from_env()
    set_level(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(app.state.db)
        logger.info("Storefront API ready")
        yield

    app = FastAPI(title="Fusion Fashion Store API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db if db is not None else connect(settings)
    app.state.signer = TokenSigner(settings)
    app.state.mailer = mailer or ResendMailer(settings)
    app.state.gateway = gateway or RazorpayGateway(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.error)
            return failure(exc.message, exc.status_code, exc.error or exc.message)
        return failure(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "invalid"))
        return failure("Invalid request data: " + "; ".join(problems), 400)

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return failure("Server error", 500, str(exc))

    register_routes(app)
    return app


# ---------- Dependencies ----------

def get_db(request: Request) -> Database:
    return request.app.state.db


def get_catalog(db: Database = Depends(get_db)) -> Catalog:
    return Catalog(db)


def get_cart_service(db: Database = Depends(get_db)) -> CartService:
    return CartService(db)


def get_order_service(db: Database = Depends(get_db)) -> OrderService:
    return OrderService(db)


def get_address_service(db: Database = Depends(get_db)) -> AddressService:
    return AddressService(db)


def get_wishlist_service(db: Database = Depends(get_db)) -> WishlistService:
    return WishlistService(db)


def get_auth_service(request: Request, db: Database = Depends(get_db)) -> AuthService:
    state = request.app.state
    return AuthService(db, state.signer, state.mailer, state.settings.frontend_url)


def get_gateway(request: Request) -> RazorpayGateway:
    return request.app.state.gateway


def register_routes(app: FastAPI) -> None:

    @app.get("/")
    def read_root():
        return {"message": "Fashion E-commerce Backend is running!"}

    # ---------- Auth ----------
    @app.post("/auth/signup")
    def signup(payload: SignupRequest, auth: AuthService = Depends(get_auth_service)):
        tokens = auth.signup(payload.username, payload.email, payload.password)
        return success(tokens, "User registered successfully", 201, **tokens)

    @app.post("/auth/login")
    def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
        tokens = auth.login(payload.email, payload.password)
        return success(tokens, "Login successful", **tokens)

    @app.post("/auth/refresh")
    def refresh(payload: RefreshRequest, auth: AuthService = Depends(get_auth_service)):
        tokens = auth.refresh(payload.refreshToken)
        return success(tokens, "Token refreshed successfully", **tokens)

    @app.post("/auth/forgot-password")
    def forgot_password(payload: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
        auth.forgot_password(payload.email)
        return success(message="Password reset email sent")

    @app.post("/auth/reset-password")
    def reset_password(payload: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
        auth.reset_password(payload.token, payload.newPassword)
        return success(message="Password reset successful")

    # ---------- Catalog ----------
    @app.get("/products")
    def list_products(page: int = 1, limit: int = 10, category: Optional[str] = None,
                      minPrice: Optional[float] = None, maxPrice: Optional[float] = None,
                      sizes: Optional[str] = None, brands: Optional[str] = None,
                      catalog: Catalog = Depends(get_catalog)):
        data = catalog.list_products(page, limit, category, minPrice, maxPrice, sizes, brands)
        return success(data, "Products fetched successfully")

    @app.get("/products/{product_id}")
    def get_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
        return success(catalog.get_product(product_id), "Product fetched successfully")

    @app.post("/products")
    def create_product(payload: Product, catalog: Catalog = Depends(get_catalog)):
        return success(catalog.create_product(payload), "Product added successfully", 201)

    @app.put("/products/{product_id}")
    def update_product(product_id: str, payload: ProductUpdate, catalog: Catalog = Depends(get_catalog)):
        return success(catalog.update_product(product_id, payload), "Product updated successfully")

    @app.delete("/products/{product_id}")
    def delete_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
        return success(catalog.delete_product(product_id), "Product deleted successfully")

    # ---------- Cart ----------
    @app.post("/cart/add")
    def add_to_cart(payload: CartItemRequest, user_id: str = Depends(get_current_user_id),
                    carts: CartService = Depends(get_cart_service)):
        cart, created = carts.add_item(user_id, payload.productId, payload.size, payload.quantity)
        return success(cart, "Item added to cart successfully.", 201 if created else 200)

    @app.get("/cart")
    def get_cart(user_id: str = Depends(get_current_user_id), carts: CartService = Depends(get_cart_service)):
        return success(carts.get_cart(user_id), "Cart fetched successfully.")

    @app.put("/cart/update")
    def update_cart_item(payload: CartItemRequest, user_id: str = Depends(get_current_user_id),
                         carts: CartService = Depends(get_cart_service)):
        cart = carts.update_item_quantity(user_id, payload.productId, payload.size, payload.quantity)
        return success(cart, "Cart item updated successfully.")

    @app.delete("/cart/clear")
    def clear_cart(user_id: str = Depends(get_current_user_id), carts: CartService = Depends(get_cart_service)):
        return success(carts.clear(user_id), "All items removed from cart.")

    @app.delete("/cart/delete/{item_id}/{size}")
    def delete_cart_item(item_id: str, size: str, user_id: str = Depends(get_current_user_id),
                         carts: CartService = Depends(get_cart_service)):
        return success(carts.remove_item(user_id, item_id, size), "Item removed from cart successfully.")

    # ---------- Orders ----------
    @app.post("/order/create")
    def create_order(payload: CreateOrderRequest, user_id: str = Depends(get_current_user_id),
                     orders: OrderService = Depends(get_order_service)):
        order = orders.create_order(user_id, payload.addressId, payload.transactionId,
                                    payload.paymentStatus, payload.orderStatus, payload.items)
        return success(order, "Order created successfully", 201)

    @app.post("/order/checkout")
    def checkout(payload: CheckoutRequest, user_id: str = Depends(get_current_user_id),
                 orders: OrderService = Depends(get_order_service)):
        order = orders.checkout(user_id, payload.addressId, payload.transactionId,
                                payload.paymentStatus, payload.orderStatus)
        return success(order, "Order created successfully", 201)

    # admin intent; not restricted to admins
    @app.get("/order")
    def list_orders(user_id: str = Depends(get_current_user_id), orders: OrderService = Depends(get_order_service)):
        return success(orders.list_orders(), "Orders fetched successfully")

    @app.get("/order/user")
    def list_user_orders(user_id: str = Depends(get_current_user_id),
                         orders: OrderService = Depends(get_order_service)):
        return success(orders.list_orders_for_user(user_id), "Orders fetched successfully")

    @app.get("/order/invoice/{order_id}")
    def download_invoice(order_id: str, request: Request, user_id: str = Depends(get_current_user_id),
                         orders: OrderService = Depends(get_order_service)):
        found = orders.raw_order(order_id)
        try:
            pdf = render_invoice(found["order"], found["address"], found["user"],
                                 brand=request.app.state.settings.invoice_brand)
        except Exception as exc:
            logger.exception("Invoice generation failed for order %s", order_id)
            return failure("Failed to generate invoice", 500, str(exc))
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename=invoice_{order_id}.pdf"},
        )

    @app.get("/order/{order_id}")
    def get_order(order_id: str, user_id: str = Depends(get_current_user_id),
                  orders: OrderService = Depends(get_order_service)):
        return success(orders.get_order(order_id), "Order fetched successfully")

    @app.put("/order/{order_id}")
    def update_order(order_id: str, payload: UpdateOrderRequest, user_id: str = Depends(get_current_user_id),
                     orders: OrderService = Depends(get_order_service)):
        order = orders.update_status(order_id, payload.orderStatus, payload.paymentStatus)
        return success(order, "Order updated")

    @app.delete("/order/{order_id}")
    def delete_order(order_id: str, user_id: str = Depends(get_current_user_id),
                     orders: OrderService = Depends(get_order_service)):
        orders.delete_order(order_id)
        return success(message="Order deleted")

    # ---------- Addresses ----------
    @app.post("/address")
    def add_address(payload: AddressInput, user_id: str = Depends(get_current_user_id),
                    addresses: AddressService = Depends(get_address_service)):
        return success(addresses.add(user_id, payload), "Address added successfully!", 201)

    @app.get("/address")
    def list_addresses(user_id: str = Depends(get_current_user_id),
                       addresses: AddressService = Depends(get_address_service)):
        return success(addresses.list_for_user(user_id), "Addresses fetched successfully")

    @app.get("/address/{address_id}")
    def get_address(address_id: str, user_id: str = Depends(get_current_user_id),
                    addresses: AddressService = Depends(get_address_service)):
        return success(addresses.get(user_id, address_id), "Address fetched successfully")

    @app.put("/address/{address_id}")
    def update_address(address_id: str, payload: AddressUpdate, user_id: str = Depends(get_current_user_id),
                       addresses: AddressService = Depends(get_address_service)):
        return success(addresses.update(user_id, address_id, payload), "Address updated successfully")

    @app.delete("/address/{address_id}")
    def delete_address(address_id: str, user_id: str = Depends(get_current_user_id),
                       addresses: AddressService = Depends(get_address_service)):
        addresses.delete(user_id, address_id)
        return success(message="Address deleted successfully")

    # ---------- Wishlist ----------
    @app.get("/wishlist")
    def get_wishlist(page: int = 1, limit: int = 10, user_id: str = Depends(get_current_user_id),
                     wishlist: WishlistService = Depends(get_wishlist_service)):
        data = wishlist.get(user_id, page, limit)
        message = "Wishlist fetched successfully" if data["products"] else "Wishlist is empty"
        return success(data, message)

    @app.post("/wishlist/add")
    def add_to_wishlist(payload: WishlistAddRequest, user_id: str = Depends(get_current_user_id),
                        wishlist: WishlistService = Depends(get_wishlist_service)):
        return success(wishlist.add(user_id, payload.productId), "Product added to wishlist")

    @app.delete("/wishlist/clear")
    def clear_wishlist(user_id: str = Depends(get_current_user_id),
                       wishlist: WishlistService = Depends(get_wishlist_service)):
        return success(wishlist.clear(user_id), "Wishlist cleared successfully")

    @app.delete("/wishlist/{product_id}")
    def remove_from_wishlist(product_id: str, user_id: str = Depends(get_current_user_id),
                             wishlist: WishlistService = Depends(get_wishlist_service)):
        return success(wishlist.remove(user_id, product_id), "Product removed from wishlist")

    # ---------- Payments ----------
    @app.post("/payment/order")
    def create_payment_order(payload: PaymentOrderRequest, user_id: str = Depends(get_current_user_id),
                             gateway: RazorpayGateway = Depends(get_gateway)):
        return success(gateway.create_order(payload.amount), "Payment order created")

    @app.post("/payment/verify")
    def verify_payment(payload: PaymentVerifyRequest, user_id: str = Depends(get_current_user_id),
                       gateway: RazorpayGateway = Depends(get_gateway)):
        if not gateway.verify_signature(payload.razorpay_order_id, payload.razorpay_payment_id,
                                        payload.razorpay_signature):
            logger.warning("Payment signature mismatch for gateway order %s", payload.razorpay_order_id)
            raise ValidationError("Payment verification failed")
        logger.info("Payment %s verified", payload.razorpay_payment_id)
        return success({"razorpay_order_id": payload.razorpay_order_id,
                        "razorpay_payment_id": payload.razorpay_payment_id},
                       "Payment verified successfully")


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)

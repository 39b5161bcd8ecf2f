from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import address_service
import admin_service
import auth_service
import cart_service
import catalog_service
import order_service
import schemas
import settings
from database import get_db, init_db
from errors import ShopError
from logging_config import configure_logging
from security import require_admin, require_user

configure_logging(log_level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
logger = structlog.get_logger(__name__)

RPC_NAMESPACES = {
    "auth": "register, login, getProfile, updateProfile",
    "products": "getProducts, getById, create, update, delete, createVariation, updateVariation",
    "cart": "get, add, updateItem, removeItem, clear",
    "orders": "create, getUserOrders, getById, updateStatus, getAll",
    "addresses": "getUserAddresses, create, update, delete",
    "admin": "getAllUsers",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("shop_api_started", port=settings.PORT, namespaces=RPC_NAMESPACES)
    yield


app = FastAPI(title="Perfume & Shirt Shop API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShopError)
def handle_shop_error(request: Request, exc: ShopError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.user_message})


# Health
@app.get("/healthcheck")
def healthcheck():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# Auth
auth = APIRouter(prefix="/api/auth", tags=["auth"])


@auth.post("/register", response_model=schemas.User)
def register(data: schemas.RegisterInput, db: Session = Depends(get_db)):
    return auth_service.register(db, data)


@auth.post("/login", response_model=schemas.User)
def login(creds: schemas.LoginInput, db: Session = Depends(get_db)):
    return auth_service.login(db, creds)


@auth.get("/profile", response_model=schemas.User)
def get_profile(ctx: schemas.AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    return auth_service.get_profile(db, ctx)


@auth.put("/profile", response_model=schemas.User)
def update_profile(
    data: schemas.UpdateProfileInput,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return auth_service.update_profile(db, data, ctx)


# Products
products = APIRouter(prefix="/api/products", tags=["products"])


@products.get("", response_model=schemas.PaginatedProducts)
def get_products(
    filters: Annotated[schemas.ProductFilters, Query()], db: Session = Depends(get_db)
):
    return catalog_service.get_products(db, filters)


@products.get("/{product_id}", response_model=Optional[schemas.ProductWithVariations])
def get_product_by_id(product_id: int, db: Session = Depends(get_db)):
    return catalog_service.get_product_by_id(db, product_id)


@products.post("", response_model=schemas.Product, dependencies=[Depends(require_admin)])
def create_product(data: schemas.CreateProductInput, db: Session = Depends(get_db)):
    return catalog_service.create_product(db, data)


@products.put("", response_model=schemas.Product, dependencies=[Depends(require_admin)])
def update_product(data: schemas.UpdateProductInput, db: Session = Depends(get_db)):
    return catalog_service.update_product(db, data)


@products.delete("/{product_id}", response_model=bool, dependencies=[Depends(require_admin)])
def delete_product(product_id: int, db: Session = Depends(get_db)):
    return catalog_service.delete_product(db, product_id)


@products.post(
    "/variations", response_model=schemas.ProductVariation, dependencies=[Depends(require_admin)]
)
def create_variation(data: schemas.CreateProductVariationInput, db: Session = Depends(get_db)):
    return catalog_service.create_product_variation(db, data)


@products.put(
    "/variations", response_model=schemas.ProductVariation, dependencies=[Depends(require_admin)]
)
def update_variation(data: schemas.UpdateProductVariationInput, db: Session = Depends(get_db)):
    return catalog_service.update_product_variation(db, data)


# Cart
cart = APIRouter(prefix="/api/cart", tags=["cart"])


@cart.get("", response_model=schemas.CartWithItems)
def get_cart(ctx: schemas.AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    return cart_service.get_cart(db, ctx)


@cart.post("/items", response_model=schemas.CartItem)
def add_to_cart(
    data: schemas.AddToCartInput,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return cart_service.add_to_cart(db, data, ctx)


@cart.put("/items", response_model=schemas.CartItem)
def update_cart_item(
    data: schemas.UpdateCartItemInput,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return cart_service.update_cart_item(db, data, ctx)


@cart.delete("/items/{cart_item_id}", response_model=bool)
def remove_from_cart(
    cart_item_id: int,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return cart_service.remove_from_cart(db, cart_item_id, ctx)


@cart.delete("", response_model=bool)
def clear_cart(ctx: schemas.AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    return cart_service.clear_cart(db, ctx)


# Orders
orders = APIRouter(prefix="/api/orders", tags=["orders"])


@orders.post("", response_model=schemas.Order)
def create_order(
    data: schemas.CreateOrderInput,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return order_service.create_order(db, data, ctx)


@orders.get("", response_model=List[schemas.OrderWithItems])
def get_user_orders(ctx: schemas.AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    return order_service.get_orders(db, ctx)


# declared before /{order_id} so "all" is not parsed as an id
@orders.get("/all", response_model=List[schemas.OrderWithItems], dependencies=[Depends(require_admin)])
def get_all_orders(db: Session = Depends(get_db)):
    return order_service.get_all_orders(db)


@orders.put("/status", response_model=schemas.Order, dependencies=[Depends(require_admin)])
def update_order_status(data: schemas.UpdateOrderStatusInput, db: Session = Depends(get_db)):
    return order_service.update_order_status(db, data)


@orders.get("/{order_id}", response_model=Optional[schemas.OrderWithItems])
def get_order_by_id(
    order_id: int,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return order_service.get_order_by_id(db, order_id, ctx)


# Addresses
addresses = APIRouter(prefix="/api/addresses", tags=["addresses"])


@addresses.get("", response_model=List[schemas.UserAddress])
def get_user_addresses(ctx: schemas.AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    return address_service.get_user_addresses(db, ctx)


@addresses.post("", response_model=schemas.UserAddress)
def create_address(
    data: schemas.CreateAddressInput,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return address_service.create_address(db, data, ctx)


@addresses.put("", response_model=schemas.UserAddress)
def update_address(
    data: schemas.UpdateAddressInput,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return address_service.update_address(db, data, ctx)


@addresses.delete("/{address_id}", response_model=bool)
def delete_address(
    address_id: int,
    ctx: schemas.AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return address_service.delete_address(db, address_id, ctx)


# Admin
admin = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin.get("/users", response_model=List[schemas.User])
def get_all_users(db: Session = Depends(get_db)):
    return admin_service.get_all_users(db)


for router in (auth, products, cart, orders, addresses, admin):
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)

"""
API Router - JSON Endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from minimarket.core import get_db
from minimarket.models import AppUser
from minimarket.services import DashboardService, ProductService, SaleService, StockService, WebOrderService
from minimarket.schemas import (
    AdjustmentCreate, CategoryCreate, CategoryResponse, LocalSaleCreate, LocalSaleResponse, MovementResponse, ProductCreate, ProductResponse,
    ProductUpdate, PurchaseCreate, StockLevel, WebOrderCreate, WebOrderResponse, WebOrderStatusUpdate,
)
from minimarket.api.auth import router as auth_router, get_current_user, resolve_actor_id

api_router = APIRouter(tags=["API"])

# Include sub-routers
api_router.include_router(auth_router)

# ===================== HEALTH & STATUS =====================

@api_router.get("/status")
def api_status():
    return {"status": "ok", "version": "1.0.0", "timestamp": datetime.now().isoformat()}

# ===================== DASHBOARD =====================

@api_router.get("/dashboard/summary")
def dashboard_summary(db: Session = Depends(get_db)):
    return DashboardService.get_summary(db)

# ===================== PRODUCTS =====================

@api_router.get("/products")
def list_products(
    search: Optional[str] = Query(None),
    active_only: bool = Query(True),
    web_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    category_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db)
):
    products, total = ProductService.get_products(db, search, active_only, web_only, page, per_page, category_id)
    return {
        "products": [ProductResponse.model_validate(p) for p in products],
        "total": total,
        "page": page,
        "per_page": per_page
    }

@api_router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(data: ProductCreate, db: Session = Depends(get_db)):
    return ProductService.create_product(db, data)

@api_router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: UUID, db: Session = Depends(get_db)):
    return ProductService.get_product(db, product_id)

@api_router.patch("/products/{product_id}", response_model=ProductResponse)
def update_product(product_id: UUID, data: ProductUpdate, db: Session = Depends(get_db)):
    return ProductService.update_product(db, product_id, data)

# ===================== CATEGORIES =====================

@api_router.get("/categories", response_model=List[CategoryResponse])
def list_categories(web_only: bool = Query(False), db: Session = Depends(get_db)):
    return ProductService.get_categories(db, web_only)

@api_router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(data: CategoryCreate, db: Session = Depends(get_db)):
    return ProductService.create_category(db, data)

# ===================== INVENTORY =====================

@api_router.post("/inventory/purchase", response_model=MovementResponse, status_code=201)
def register_purchase(
    data: PurchaseCreate,
    current_user: Optional[AppUser] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    actor_id = resolve_actor_id(current_user, data.user_id)
    return StockService.register_purchase(db, data, actor_id)

@api_router.post("/inventory/adjustments", response_model=MovementResponse, status_code=201)
def register_adjustment(
    data: AdjustmentCreate,
    current_user: Optional[AppUser] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    actor_id = resolve_actor_id(current_user, data.user_id)
    return StockService.register_adjustment(db, data, actor_id)

@api_router.get("/inventory/{product_id}/stock", response_model=StockLevel)
def get_stock(product_id: UUID, db: Session = Depends(get_db)):
    return StockService.get_stock_level(db, product_id)

@api_router.get("/inventory/{product_id}/movements", response_model=List[MovementResponse])
def get_movements(product_id: UUID, db: Session = Depends(get_db)):
    return StockService.get_movements(db, product_id)

# ===================== LOCAL SALES =====================

@api_router.post("/local-sales", response_model=LocalSaleResponse, status_code=201)
def create_local_sale(
    data: LocalSaleCreate,
    current_user: Optional[AppUser] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    actor_id = resolve_actor_id(current_user, data.user_id)
    return SaleService.create_local_sale(db, data, actor_id)

@api_router.get("/local-sales", response_model=List[LocalSaleResponse])
def list_local_sales(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
):
    return SaleService.list_sales(db, start, end, limit)

# ===================== WEB ORDERS =====================

@api_router.post("/web-orders", response_model=WebOrderResponse, status_code=201)
def create_web_order(data: WebOrderCreate, db: Session = Depends(get_db)):
    return WebOrderService.create_order(db, data)

@api_router.get("/web-orders", response_model=List[WebOrderResponse])
def list_web_orders(
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
):
    return WebOrderService.list_orders(db, status, limit)

@api_router.get("/web-orders/{order_id}", response_model=WebOrderResponse)
def get_web_order(order_id: UUID, db: Session = Depends(get_db)):
    return WebOrderService.get_order(db, order_id)

@api_router.patch("/web-orders/{order_id}/status", response_model=WebOrderResponse)
def update_web_order_status(
    order_id: UUID,
    data: WebOrderStatusUpdate,
    current_user: Optional[AppUser] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    actor_id = resolve_actor_id(current_user, data.user_id)
    return WebOrderService.update_status(db, order_id, data.status, actor_id, data.payment_method)

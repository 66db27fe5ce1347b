"""
Product Service - Business Logic for Products and Categories
"""
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from minimarket.core import transaction
from minimarket.core.exceptions import EntityNotFound, ValidationError
from minimarket.models import Category, Product
from minimarket.schemas.product import CategoryCreate, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

# Columns an update may clear
NULLABLE_FIELDS = {"sku", "barcode", "description", "category_id"}


def _check_product_fields(db: Session, values: dict) -> None:
    for field, value in values.items():
        if value is None and field not in NULLABLE_FIELDS:
            raise ValidationError(f"{field} cannot be null", field=field)
    if "name" in values and not values["name"].strip():
        raise ValidationError("name is required", field="name")
    for field in ("price", "cost"):
        if field in values and values[field] < 0:
            raise ValidationError(f"{field} cannot be negative", field=field)
    if values.get("low_stock_threshold") is not None and values["low_stock_threshold"] < 0:
        raise ValidationError("low_stock_threshold cannot be negative", field="low_stock_threshold")
    if values.get("category_id") is not None and db.get(Category, values["category_id"]) is None:
        raise EntityNotFound("Category", values["category_id"])


class ProductService:
    """Product business logic"""

    @staticmethod
    def get_products(
        db: Session,
        search: Optional[str] = None,
        active_only: bool = True,
        web_only: bool = False,
        page: int = 1,
        per_page: int = 50,
        category_id: Optional[UUID] = None,
    ) -> Tuple[List[Product], int]:
        """Get products with filters and pagination"""
        query = db.query(Product)

        if active_only:
            query = query.filter(Product.is_active == True)

        if web_only:
            query = query.filter(Product.visible_web == True)

        if category_id:
            query = query.filter(Product.category_id == category_id)

        if search:
            search_term = f"%{search}%"
            query = query.filter(
                or_(
                    Product.sku.ilike(search_term),
                    Product.barcode == search,
                    Product.name.ilike(search_term)
                )
            )

        total = query.count()

        products = query.order_by(Product.name)\
            .offset((page - 1) * per_page)\
            .limit(per_page)\
            .all()

        return products, total

    @staticmethod
    def get_product(db: Session, product_id: UUID) -> Product:
        product = db.get(Product, product_id)
        if product is None:
            raise EntityNotFound("Product", product_id)
        return product

    @staticmethod
    def get_product_by_sku(db: Session, sku: str) -> Optional[Product]:
        """Get product by SKU"""
        return db.query(Product).filter(Product.sku == sku).first()

    @staticmethod
    def create_product(db: Session, product_data: ProductCreate) -> Product:
        """Create new product"""
        values = product_data.model_dump()
        _check_product_fields(db, values)
        if product_data.sku and ProductService.get_product_by_sku(db, product_data.sku):
            raise ValidationError(f"SKU {product_data.sku} already exists", field="sku")

        with transaction(db):
            product = Product(**values)
            product.name = product.name.strip()
            db.add(product)

        db.refresh(product)
        logger.info(f"Product created: {product.sku} {product.name}")
        return product

    @staticmethod
    def update_product(db: Session, product_id: UUID, product_data: ProductUpdate) -> Product:
        """Update product (stock is never edited here, only through movements)"""
        product = ProductService.get_product(db, product_id)
        values = product_data.model_dump(exclude_unset=True)
        _check_product_fields(db, values)

        with transaction(db):
            for field, value in values.items():
                setattr(product, field, value)
            if "name" in values:
                product.name = product.name.strip()

        db.refresh(product)
        return product

    # ========== Categories ==========

    @staticmethod
    def get_categories(db: Session, web_only: bool = False) -> List[Category]:
        query = db.query(Category)
        if web_only:
            query = query.filter(Category.visible_web == True)
        return query.order_by(Category.name).all()

    @staticmethod
    def create_category(db: Session, data: CategoryCreate) -> Category:
        """Create a category, optionally under an existing parent"""
        if not data.name.strip():
            raise ValidationError("name is required", field="name")
        if data.parent_id is not None and db.get(Category, data.parent_id) is None:
            raise EntityNotFound("Category", data.parent_id)

        with transaction(db):
            category = Category(name=data.name.strip(), parent_id=data.parent_id, visible_web=data.visible_web)
            db.add(category)

        db.refresh(category)
        return category

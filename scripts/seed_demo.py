"""
Seed a development database with an admin user, a few products and opening stock.
Usage: python scripts/seed_demo.py [admin_email] [admin_password]
"""
import sys
import os
sys.path.append(os.getcwd())

from decimal import Decimal

from minimarket.core import SessionLocal, engine, Base
from minimarket.core.logging import setup_logging
from minimarket.api.auth import create_user
from minimarket.models import AppUser, Category, Product
from minimarket.schemas import PurchaseCreate
from minimarket.services import StockService

DEMO_CATEGORIES = ["Abarrotes", "Bebidas", "Lacteos", "Panaderia"]

DEMO_PRODUCTS = [
    # sku, name, category, unit, price, cost, opening stock
    ("LECHE-1L", "Leche Entera 1L", "Lacteos", "unit", 1090, 780, 24),
    ("PAN-MARRAQUETA", "Marraqueta", "Panaderia", "kg", 2200, 1300, 10),
    ("ARROZ-1K", "Arroz Grado 1 1kg", "Abarrotes", "unit", 1290, 850, 30),
    ("AGUA-1500", "Agua Mineral 1.5L", "Bebidas", "unit", 850, 590, 40),
    ("HUEVOS-12", "Huevos x12", "Abarrotes", "unit", 3490, 2600, 2),
]

setup_logging()
Base.metadata.create_all(bind=engine)
db = SessionLocal()

email = sys.argv[1] if len(sys.argv) > 1 else "admin@minimarket.cl"
password = sys.argv[2] if len(sys.argv) > 2 else "admin"

admin = db.query(AppUser).filter(AppUser.email == email).first()
if not admin:
    admin = create_user(db, email, "Administrador", password, role="admin")
    print(f"Created admin user {email}")

categories = {}
for name in DEMO_CATEGORIES:
    category = db.query(Category).filter(Category.name == name).first()
    if not category:
        category = Category(name=name)
        db.add(category)
        db.commit()
        print(f"Created category {name}")
    categories[name] = category

count = 0
for sku, name, category_name, unit, price, cost, opening in DEMO_PRODUCTS:
    if db.query(Product).filter(Product.sku == sku).first():
        print(f"Product {sku} skipped: Already exists.")
        continue

    product = Product(
        sku=sku, name=name, category_id=categories[category_name].id, unit=unit, price=Decimal(price), cost=Decimal(cost),
    )
    db.add(product)
    db.commit()

    StockService.register_purchase(db, PurchaseCreate(
        product_id=product.id,
        quantity=opening,
        document_type="GUIA",
        document_number=f"SEED-{sku}",
        notes="Opening stock",
    ), actor_id=admin.id)
    count += 1

print(f"Seeded {count} products.")
db.close()

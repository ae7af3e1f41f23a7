"""Seed the database with an admin account and a small sample catalog.

Usage (from the backend/ directory): ``python seed_db.py``
"""
import logging
from decimal import Decimal

from config import settings
from database import SessionLocal, init_db
from models.category import Category
from models.product import Product
from models.users import User, UserRole
from utils.hashing import get_password_hash

logger = logging.getLogger(__name__)

# (category name, description, [(product name, description, price, stock)])
SAMPLE_CATALOG = [
    ("Electronics", "Home appliances and gadgets", [
        ("Bosch KDN55NWE0N", "453 l No-Frost refrigerator", "27256.06", 65),
        ("Roborock Q8 Max Pro", "Robot vacuum cleaner", "17999.00", 25),
        ("GoPro HERO12 Black", "Action camera", "18359.00", 55),
        ("Epson L3266", "Wi-Fi ink tank printer, scanner and copier", "6499.00", 40),
    ]),
    ("Home & Living", "Furniture and home decoration", [
        ("Height Adjustable Desk", "Walnut, on wheels, 80x40", "899.00", 20),
        ("4-Tier Steel Shelf", "Galvanised, 150 cm", "1837.45", 50),
        ("Hawk Gaming Chair Fab V4", "Gaming chair", "7499.00", 87),
        ("4-Drawer Chest", "MDF, Soho collection", "8998.95", 17),
    ]),
    ("Mobile Phones", "Phones of every brand and model", [
        ("iPhone 17", "Apple iPhone 17 128GB", "29999.99", 23),
        ("Galaxy S23", "Samsung Galaxy S23 128GB", "49999.99", 10),
        ("X7 Pro", "Poco X7 Pro", "19999.99", 24),
        ("Pixel 10 Pro XL", "Google Pixel 10 Pro XL", "35000.00", 5),
    ]),
]


def ensure_admin(session) -> User:
    email = settings.ADMIN_EMAIL.strip().lower()
    admin = session.query(User).filter(User.email == email).first()
    if admin:
        logger.info("Admin account %s already exists", email)
        return admin

    admin = User(
        name="Administrator",
        email=email,
        password_hash=get_password_hash(settings.ADMIN_PASSWORD),
        role=UserRole.ADMIN.value,
    )
    session.add(admin)
    session.flush()
    logger.info("Created admin account %s", email)
    return admin


def seed_catalog(session) -> int:
    if session.query(Category).first() is not None:
        logger.info("Catalog already populated, skipping sample data")
        return 0

    created = 0
    for category_name, category_description, products in SAMPLE_CATALOG:
        category = Category(name=category_name, description=category_description)
        session.add(category)
        session.flush()
        for name, description, price, stock in products:
            session.add(Product(
                name=name,
                description=description,
                price=Decimal(price),
                stock_quantity=stock,
                category_id=category.id,
            ))
            created += 1
    return created


def populate_database():
    """Main execution function to populate database."""
    init_db()
    session = SessionLocal()
    try:
        ensure_admin(session)
        created = seed_catalog(session)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
    logger.info("Seeding finished, %d products created", created)


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    populate_database()

#!/usr/bin/env python3
"""
Seed script to create demo restaurant, menu and payment data
"""

import asyncio
import uuid

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MENU = [
    {"name": "Phở bò tái", "category": "Noodles", "price": 65000, "prep_time_minutes": 10,
     "modifiers": [("Size", "Regular", 0), ("Size", "Large", 15000), ("Extras", "Extra beef", 25000)]},
    {"name": "Bún chả Hà Nội", "category": "Noodles", "price": 60000, "prep_time_minutes": 12,
     "modifiers": [("Extras", "Extra nem", 20000)]},
    {"name": "Cơm tấm sườn bì chả", "category": "Rice", "price": 55000, "prep_time_minutes": 10,
     "modifiers": [("Extras", "Fried egg", 8000), ("Extras", "No pickles", 0)]},
    {"name": "Gỏi cuốn", "category": "Starters", "price": 45000, "prep_time_minutes": 5,
     "modifiers": []},
    {"name": "Cà phê sữa đá", "category": "Drinks", "price": 29000, "prep_time_minutes": 3,
     "modifiers": [("Sugar", "Less sugar", 0), ("Size", "Large", 10000)]},
    {"name": "Trà đào cam sả", "category": "Drinks", "price": 39000, "prep_time_minutes": 3,
     "modifiers": []},
]

PAYMENT_METHODS = [
    ("cash", "Cash", 0),
    ("vnpay", "VNPay", 1),
    ("momo", "MoMo", 2),
    ("zalopay", "ZaloPay", 3),
]


async def seed_demo_data():
    """Seed demo data for development"""
    from app.database import SessionLocal, engine, Base
    from app.models.billing import PaymentMethod
    from app.models.menu import MenuItem, ModifierOption
    from app.models.restaurant import Restaurant, Table
    from app.models.user import User, UserRole

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo restaurant already exists
        from sqlalchemy import select
        result = await db.execute(
            select(Restaurant).where(Restaurant.name == "Quán Ngon Demo")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo restaurant...")

        restaurant = Restaurant(
            id=uuid.uuid4(),
            name="Quán Ngon Demo",
            address="18 Phan Bội Châu, Hoàn Kiếm, Hà Nội",
            phone="+842439428162",
        )
        db.add(restaurant)
        await db.flush()

        print(f"Created restaurant: {restaurant.name} (ID: {restaurant.id})")

        # Tables
        for number in range(1, 9):
            db.add(
                Table(
                    restaurant_id=restaurant.id,
                    table_number=f"T{number:02d}",
                    capacity=4 if number <= 6 else 8,
                    location="Indoor" if number <= 6 else "Garden",
                )
            )

        # Users
        users = [
            ("admin@tabletop.vn", "admin123", "Platform Admin", UserRole.SUPER_ADMIN, None),
            ("manager@quanngon.vn", "manager123", "Nguyễn Văn Quản", UserRole.ADMIN, restaurant.id),
            ("waiter@quanngon.vn", "waiter123", "Trần Thị Phục", UserRole.WAITER, restaurant.id),
            ("kitchen@quanngon.vn", "kitchen123", "Lê Văn Bếp", UserRole.KITCHEN_STAFF, restaurant.id),
        ]
        for email, password, full_name, role, restaurant_id in users:
            db.add(
                User(
                    email=email,
                    hashed_password=pwd_context.hash(password),
                    full_name=full_name,
                    role=role,
                    restaurant_id=restaurant_id,
                )
            )

        # Menu
        print("Creating menu items...")
        for item_data in MENU:
            item = MenuItem(
                restaurant_id=restaurant.id,
                name=item_data["name"],
                category=item_data["category"],
                price=item_data["price"],
                prep_time_minutes=item_data["prep_time_minutes"],
                status="available",
            )
            db.add(item)
            await db.flush()

            for group_name, name, adjustment in item_data["modifiers"]:
                db.add(
                    ModifierOption(
                        menu_item_id=item.id,
                        group_name=group_name,
                        name=name,
                        price_adjustment=adjustment,
                        status="active",
                    )
                )

        # Payment methods
        result = await db.execute(select(PaymentMethod.code))
        known_codes = set(result.scalars().all())
        for code, name, display_order in PAYMENT_METHODS:
            if code not in known_codes:
                db.add(PaymentMethod(code=code, name=name, display_order=display_order))

        await db.commit()

        print(f"""
Demo data created successfully!

Restaurant: {restaurant.name}
  ID: {restaurant.id}
  Tables: T01-T08

Users:
  Super Admin:  admin@tabletop.vn / admin123
  Manager:      manager@quanngon.vn / manager123
  Waiter:       waiter@quanngon.vn / waiter123
  Kitchen:      kitchen@quanngon.vn / kitchen123

Menu: {len(MENU)} items created
Payment methods: {", ".join(code for code, _, _ in PAYMENT_METHODS)}
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())

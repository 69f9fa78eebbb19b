"""Test configuration and fixtures"""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.models.billing import PaymentMethod
from app.models.menu import MenuItem, ModifierOption
from app.models.order import Order
from app.models.restaurant import Restaurant, Table
from app.models.user import User, UserRole
from app.api.auth import create_access_token, get_password_hash


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_restaurant(test_db):
    restaurant = Restaurant(id=uuid4(), name="Quán Test", address="1 Test St")
    test_db.add(restaurant)
    await test_db.commit()
    return restaurant


@pytest.fixture
async def other_restaurant(test_db):
    restaurant = Restaurant(id=uuid4(), name="Other Place")
    test_db.add(restaurant)
    await test_db.commit()
    return restaurant


@pytest.fixture
async def test_table(test_db, test_restaurant):
    table = Table(
        id=uuid4(),
        restaurant_id=test_restaurant.id,
        table_number="T01",
        capacity=4,
        location="Indoor",
        status="active",
    )
    test_db.add(table)
    await test_db.commit()
    return table


@pytest.fixture
async def inactive_table(test_db, test_restaurant):
    table = Table(
        id=uuid4(),
        restaurant_id=test_restaurant.id,
        table_number="T99",
        status="inactive",
    )
    test_db.add(table)
    await test_db.commit()
    return table


@pytest.fixture
async def test_menu_items(test_db, test_restaurant):
    """Create test menu items: two orderable, one inactive"""
    items = {
        "pho": MenuItem(
            id=uuid4(),
            restaurant_id=test_restaurant.id,
            name="Phở bò",
            price=Decimal("45000"),
            status="available",
            prep_time_minutes=10,
        ),
        "com": MenuItem(
            id=uuid4(),
            restaurant_id=test_restaurant.id,
            name="Cơm tấm",
            price=Decimal("55500.40"),
            status="active",
        ),
        "banh_xeo": MenuItem(
            id=uuid4(),
            restaurant_id=test_restaurant.id,
            name="Bánh xèo",
            price=Decimal("50000"),
            status="inactive",
        ),
    }
    test_db.add_all(items.values())
    await test_db.commit()
    return items


@pytest.fixture
async def test_modifiers(test_db, test_menu_items):
    """Modifier options: active, legacy (no status) and inactive"""
    options = {
        "extra_egg": ModifierOption(
            id=uuid4(),
            menu_item_id=test_menu_items["com"].id,
            group_name="Extras",
            name="Extra egg",
            price_adjustment=Decimal("12000.60"),
            status="active",
        ),
        "legacy": ModifierOption(
            id=uuid4(),
            menu_item_id=test_menu_items["pho"].id,
            group_name="Size",
            name="Large",
            price_adjustment=Decimal("10000"),
            status=None,
        ),
        "retired": ModifierOption(
            id=uuid4(),
            menu_item_id=test_menu_items["pho"].id,
            group_name="Extras",
            name="Retired topping",
            price_adjustment=Decimal("5000"),
            status="inactive",
        ),
    }
    test_db.add_all(options.values())
    await test_db.commit()
    return options


@pytest.fixture
async def payment_methods(test_db):
    methods = {
        code: PaymentMethod(id=uuid4(), code=code, name=code.upper(), display_order=order)
        for order, code in enumerate(["cash", "vnpay", "momo", "zalopay"])
    }
    methods["paypal"] = PaymentMethod(
        id=uuid4(), code="paypal", name="PayPal", is_active=False, display_order=9
    )
    test_db.add_all(methods.values())
    await test_db.commit()
    return methods


def _user(restaurant_id, email, role):
    return User(
        id=uuid4(),
        restaurant_id=restaurant_id,
        email=email,
        hashed_password=get_password_hash("testpass123"),
        full_name=email.split("@")[0].title(),
        role=role,
        is_active=True,
    )


@pytest.fixture
async def test_waiter(test_db, test_restaurant):
    user = _user(test_restaurant.id, "waiter@example.com", UserRole.WAITER)
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def test_kitchen_user(test_db, test_restaurant):
    user = _user(test_restaurant.id, "kitchen@example.com", UserRole.KITCHEN_STAFF)
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def other_waiter(test_db, other_restaurant):
    user = _user(other_restaurant.id, "waiter@other.example.com", UserRole.WAITER)
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def test_customer(test_db):
    user = _user(None, "customer@example.com", UserRole.CUSTOMER)
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
def auth_headers():
    """Bearer header factory for a user"""
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user)}"}
    return _headers


@pytest.fixture
async def client(test_db):
    """Create test client with overridden database"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def order_payload(test_restaurant, test_table, test_menu_items):
    """Request body for one phở (45000 x 2)"""
    return {
        "restaurant_id": str(test_restaurant.id),
        "table_id": str(test_table.id),
        "items": [
            {"menu_item_id": str(test_menu_items["pho"].id), "quantity": 2},
        ],
    }


@pytest.fixture
def make_order(test_db, test_restaurant, test_table):
    """Insert an order directly in a given status (90000 + 9000 tax by default)"""
    counter = {"n": 0}

    async def _make(status="pending", subtotal=90000, table=None, **fields):
        counter["n"] += 1
        tax = subtotal // 10
        order = Order(
            id=uuid4(),
            order_number=f"ORD-20260101-{1000 + counter['n']}",
            restaurant_id=test_restaurant.id,
            table_id=(table or test_table).id,
            status=status,
            subtotal=subtotal,
            tax=tax,
            total=subtotal + tax,
            **fields,
        )
        test_db.add(order)
        await test_db.commit()
        return order

    return _make

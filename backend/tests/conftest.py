import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.models import Category, Product, User, Warehouse
from app.models.transaction import TransactionType
from app.services import TransactionService
from app.services.transaction_service import ItemInput

# 테스트마다 새로 만드는 인메모리 SQLite
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def db():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest_asyncio.fixture
async def client(db):
    """DB 의존성을 테스트 세션으로 교체한 클라이언트 (lifespan 미실행)"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    user = User(email="kim@ecocycle.test", first_name="Minji", last_name="Kim", role="manager")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _warehouse(db, code: str, city: str) -> Warehouse:
    warehouse = Warehouse(
        code=code,
        name=f"{city} Hub",
        location=city,
        address=f"1 {city} Street",
        city=city,
        country="DE",
        capacity=10000,
    )
    db.add(warehouse)
    db.commit()
    db.refresh(warehouse)
    return warehouse


@pytest.fixture
def warehouse(db):
    return _warehouse(db, "WH-BER-01", "Berlin")


@pytest.fixture
def other_warehouse(db):
    return _warehouse(db, "WH-HAM-01", "Hamburg")


@pytest.fixture
def category(db):
    category = Category(name="Packaging", is_recyclable=True)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def product(db, category):
    product = Product(
        sku="ECO-PKG-0001",
        name="Bamboo Box",
        category_id=category.id,
        unit="pcs",
        cost_price=2.0,
        selling_price=5.0,
        min_stock_level=5,
        reorder_point=10,
        weight=0.5,
        carbon_footprint_kg=1.2,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def stock_in(db, user):
    """입고 트랜잭션으로 재고를 채우는 헬퍼"""

    def _stock_in(warehouse_id: int, product_id: int, quantity: int):
        return TransactionService(db).create(
            TransactionType.STOCK_IN, warehouse_id, user.id,
            [ItemInput(product_id, quantity)],
        )

    return _stock_in

import os
import tempfile

_tmp = tempfile.mkdtemp(prefix="marketplace-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["LOCK_DIR"] = os.path.join(_tmp, "locks")
os.environ["DECREMENT_STOCK_ON_ORDER"] = "true"

import pytest  # noqa: E402

from marketplace.db import SessionLocal, init_db  # noqa: E402
from marketplace.realtime import ChangeFeed  # noqa: E402
from marketplace.repositories.product_repo import ProductRepository  # noqa: E402
from marketplace.session import SessionContext  # noqa: E402

SELLER = "seller-1"
BUYER = "buyer-1"


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def feed():
    return ChangeFeed(SessionLocal)


@pytest.fixture
def buyer():
    return SessionContext(BUYER)


@pytest.fixture
def seller():
    return SessionContext(SELLER)


@pytest.fixture
def make_product():
    """Insert a listing in its own committed session and return its id."""
    counter = {"n": 0}

    def _make(stock=5, price_cents=1000, title=None, seller_id=SELLER, **extra):
        counter["n"] += 1
        s = SessionLocal()
        try:
            p = ProductRepository(s).create_or_update(
                product_id=f"prod-{counter['n']}",
                title=title or f"Item {counter['n']}",
                price_cents=price_cents,
                seller_id=seller_id,
                stock=stock,
                **extra,
            )
            s.commit()
            return p.id
        finally:
            s.close()

    return _make


@pytest.fixture
def stock_of():
    def _stock(product_id):
        s = SessionLocal()
        try:
            return ProductRepository(s).current_stock(product_id)
        finally:
            s.close()

    return _stock


@pytest.fixture
def set_stock():
    """Change a listing's stock from another session, as a seller's app would."""
    def _set(product_id, stock):
        s = SessionLocal()
        try:
            p = ProductRepository(s).get(product_id)
            p.stock = stock
            p.is_active = stock > 0
            s.commit()
        finally:
            s.close()

    return _set

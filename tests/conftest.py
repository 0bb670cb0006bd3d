# tests/conftest.py
import os
import sys
from pathlib import Path

import pytest

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from orderflow import config as app_config  # noqa: E402
from orderflow.core.states import OrderState  # noqa: E402
from orderflow.database import FileBackedDB  # noqa: E402
from orderflow.services.gateway import FileBackedOrderGateway  # noqa: E402
from orderflow.services.order_service import OrderService  # noqa: E402
from orderflow.services.state_machine_service import OrderStateMachineService  # noqa: E402


@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """
    Ensures tests run against an isolated temp data directory.
    The module-level `db` singleton resolves settings.DATA_DIR lazily, so it follows too.
    """
    data_dir = Path(tmp_path) / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setattr(app_config.settings, "DATA_DIR", data_dir)
    yield data_dir


@pytest.fixture
def file_db(temp_data_dir):
    return FileBackedDB(temp_data_dir)


class RecordingGateway:
    """Wraps a gateway and counts calls, so tests can assert on reads and writes."""

    def __init__(self, inner):
        self.inner = inner
        self.loads = []
        self.saves = []

    def load(self, order_id):
        self.loads.append(order_id)
        return self.inner.load(order_id)

    def save(self, order_id, new_state):
        self.saves.append((order_id, new_state))
        self.inner.save(order_id, new_state)


@pytest.fixture
def gateway(file_db):
    return RecordingGateway(FileBackedOrderGateway(file_db))


@pytest.fixture
def sm_service(gateway):
    return OrderStateMachineService(gateway)


@pytest.fixture
def order_service(file_db, sm_service):
    return OrderService(db=file_db, state_machine_service=sm_service)


@pytest.fixture
def make_order(order_service, file_db):
    """
    Create an order and optionally force its stored state.
    Usage: order = make_order(state=OrderState.PAID)
    """
    def _fn(state=OrderState.CREATED, customer_id="cust-1"):
        order = order_service.create_order(
            customer_id,
            [{"product_name": "Test product", "quantity": 1, "unit_price": 100.0}],
        )
        if state != OrderState.CREATED:
            file_db.update_record("orders", "id", order.id, {"state": OrderState(state).value})
        return order
    return _fn

"""Concurrent writers against one JSON store file.

Every writer opens its own ``JsonFileStore`` on the same path, the way
separate CLI invocations do.  Whatever the interleaving, stock is never
oversold, each reported success is on disk, and a cancellation restores
stock exactly once.
"""

import os
import subprocess
import sys
import threading

from storeops.application.create_order import CreateOrderHandler
from storeops.application.dto import (
    CreateOrderCommand,
    OrderItemSpec,
    TransitionOrderCommand,
)
from storeops.application.retry import retry_on_conflict
from storeops.application.transition_order import TransitionOrderHandler
from storeops.domain.exceptions import InsufficientStock, InvalidTransition
from storeops.domain.model.order import Customer, PaymentMethod
from storeops.domain.model.pricing import PricingPolicy
from storeops.domain.model.product import Product
from storeops.domain.model.state_machine import OrderStatus
from storeops.domain.model.value_objects import Money
from storeops.infrastructure.persistence.document_store import JsonFileStore
from storeops.infrastructure.persistence.unit_of_work import StoreUnitOfWork

# Runs one create or cancel in a fresh interpreter.  Writes are slowed
# down so that the other processes are reading while a commit is in flight.
_WORKER = """
import sys
import time
from pathlib import Path

from storeops.application.create_order import CreateOrderHandler
from storeops.application.dto import (
    CreateOrderCommand,
    OrderItemSpec,
    TransitionOrderCommand,
)
from storeops.application.retry import retry_on_conflict
from storeops.application.transition_order import TransitionOrderHandler
from storeops.domain.exceptions import InsufficientStock, InvalidTransition
from storeops.domain.model.order import Customer, PaymentMethod
from storeops.domain.model.pricing import PricingPolicy
from storeops.domain.model.state_machine import OrderStatus
from storeops.infrastructure.persistence.document_store import JsonFileStore
from storeops.infrastructure.persistence.unit_of_work import StoreUnitOfWork

mode, path, arg = sys.argv[1:4]
fast_write = JsonFileStore.write


def slow_write(self, document):
    time.sleep(0.1)
    fast_write(self, document)


JsonFileStore.write = slow_write
uow = StoreUnitOfWork(JsonFileStore(Path(path)))
try:
    if mode == "create":
        command = CreateOrderCommand(
            customer=Customer("worker@example.com", "Worker"),
            items=[OrderItemSpec(arg, 1)],
            payment_method=PaymentMethod.CREDIT_CARD,
            actor="worker",
        )
        dto = retry_on_conflict(
            lambda: CreateOrderHandler(uow, PricingPolicy()).handle(command)
        )
    else:
        command = TransitionOrderCommand(arg, OrderStatus.CANCELLED, actor="worker")
        dto = retry_on_conflict(lambda: TransitionOrderHandler(uow).handle(command))
except (InsufficientStock, InvalidTransition) as exc:
    print(type(exc).__name__)
else:
    print("ok", dto.order_number)
"""


def _setup(tmp_path, quantity: int):
    path = tmp_path / "store.json"
    store = JsonFileStore(path)
    with StoreUnitOfWork(store) as uow:
        uow.products.add(
            Product(id="1", name="Widget", price=Money.of("15.00"), quantity=quantity)
        )
        uow.commit()
    return path


def _create(path, quantity: int = 1) -> str:
    handler = CreateOrderHandler(StoreUnitOfWork(JsonFileStore(path)), PricingPolicy())
    dto = handler.handle(
        CreateOrderCommand(
            customer=Customer("alice@example.com", "Alice"),
            items=[OrderItemSpec("1", quantity)],
            payment_method=PaymentMethod.CREDIT_CARD,
            actor="alice",
        )
    )
    return dto.order_number


def _cancel(path, number: str) -> str:
    handler = TransitionOrderHandler(StoreUnitOfWork(JsonFileStore(path)))
    command = TransitionOrderCommand(number, OrderStatus.CANCELLED, actor="worker")
    return retry_on_conflict(lambda: handler.handle(command), backoff=0.01).order_number


def _on_disk(path) -> tuple[dict, list[str]]:
    document = JsonFileStore(path).read()
    [product] = document["products"]
    return product, [o["order_number"] for o in document["orders"]]


def _run_threads(count: int, work) -> list[str]:
    barrier = threading.Barrier(count)
    results: list[str] = []
    errors: list[BaseException] = []

    def run():
        barrier.wait()
        try:
            results.append(work())
        except (InsufficientStock, InvalidTransition) as exc:
            results.append(type(exc).__name__)
        except BaseException as exc:
            errors.append(exc)

    threads = [threading.Thread(target=run) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    assert not errors, errors
    return results


def _run_processes(count: int, mode: str, path, arg: str) -> list[str]:
    env = dict(os.environ, PYTHONPATH=os.pathsep.join(p for p in sys.path if p))
    procs = [
        subprocess.Popen(
            [sys.executable, "-c", _WORKER, mode, str(path), arg],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        for _ in range(count)
    ]
    lines = []
    for proc in procs:
        out, err = proc.communicate(timeout=60)
        assert proc.returncode == 0, err
        lines.append(out.strip())
    return lines


class TestThreads:

    def test_concurrent_creates_never_oversell(self, tmp_path):
        path = _setup(tmp_path, quantity=5)
        results = _run_threads(12, lambda: _create(path))

        created = [r for r in results if r.startswith("ORD-")]
        assert len(created) == 5
        assert results.count("InsufficientStock") == 7
        product, persisted = _on_disk(path)
        assert sorted(persisted) == sorted(created)
        assert (product["quantity"], product["total_sold"]) == (0, 5)

    def test_conflicting_cancels_restore_once(self, tmp_path):
        path = _setup(tmp_path, quantity=10)
        number = _create(path, quantity=3)
        results = _run_threads(6, lambda: _cancel(path, number))

        assert results.count(number) == 1
        assert results.count("InvalidTransition") == 5
        product, _ = _on_disk(path)
        assert (product["quantity"], product["total_sold"]) == (10, 0)


class TestProcesses:

    def test_concurrent_creates_never_oversell(self, tmp_path):
        path = _setup(tmp_path, quantity=3)
        lines = _run_processes(6, "create", path, "1")

        created = [line.split()[1] for line in lines if line.startswith("ok ")]
        assert len(created) == 3
        assert lines.count("InsufficientStock") == 3
        product, persisted = _on_disk(path)
        # Every order a process reported is on disk.
        assert sorted(persisted) == sorted(created)
        assert (product["quantity"], product["total_sold"]) == (0, 3)

    def test_conflicting_cancels_restore_once(self, tmp_path):
        path = _setup(tmp_path, quantity=10)
        number = _create(path, quantity=4)
        lines = _run_processes(4, "cancel", path, number)

        assert lines.count(f"ok {number}") == 1
        assert lines.count("InvalidTransition") == 3
        product, _ = _on_disk(path)
        assert (product["quantity"], product["total_sold"]) == (10, 0)


class TestFileLock:

    def test_other_processes_wait_while_held(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        try_lock = (
            "import fcntl, sys\n"
            "with open(sys.argv[1], 'a') as f:\n"
            "    try:\n"
            "        fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)\n"
            "    except BlockingIOError:\n"
            "        print('held')\n"
            "    else:\n"
            "        print('free')\n"
        )
        lock_path = str(tmp_path / "store.json.lock")

        def check() -> str:
            return subprocess.run(
                [sys.executable, "-c", try_lock, lock_path],
                capture_output=True, text=True, check=True,
            ).stdout.strip()

        with store.lock:
            # Re-entering from the same thread does not deadlock.
            with store.lock:
                assert store.read()["orders"] == []
            assert check() == "held"
        assert check() == "free"

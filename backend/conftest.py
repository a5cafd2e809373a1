from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

import stockdb  # noqa: E402,F401  (registers every model on Base.metadata)
from stockdb.database import Base, build_engine  # noqa: E402
from stockdb.apps.directory import models as directory_models  # noqa: E402
from stockdb.apps.inventory import models as inventory_models  # noqa: E402


@pytest.fixture()
def db_session():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def directory(db_session):
    """Two customer branches, one department and one staff member."""
    customer = directory_models.Customer(customer_code="C-1", customer_name="Acme Retail")
    branch_a = directory_models.Branch(branch_code="B-1", branch_name="Acme North", owner_customer_code="C-1")
    branch_b = directory_models.Branch(branch_code="B-2", branch_name="Acme South", owner_customer_code="C-1")
    department = directory_models.Department(department_code="D-1", department_name="Field Service")
    staff = directory_models.Staff(staff_code="ST-1", staff_name="Store Keeper", department_code="D-1")
    db_session.add_all([customer, branch_a, branch_b, department, staff])
    db_session.commit()
    return {
        "customer": customer,
        "branch": branch_a,
        "other_branch": branch_b,
        "department": department,
        "staff": staff,
    }


@pytest.fixture()
def make_items(db_session):
    def _make(*serials: str, status=inventory_models.ItemStatusEnum.IN_STOCK, reserved_branch_code=None):
        items = [
            inventory_models.Item(serial_no=serial_no, status=status, reserved_branch_code=reserved_branch_code)
            for serial_no in serials
        ]
        db_session.add_all(items)
        db_session.commit()
        return items

    return _make


@pytest.fixture()
def today() -> date:
    return date(2026, 10, 19)


@pytest.fixture()
def make_withdrawal(db_session, directory, today):
    from stockdb.apps.withdrawals import models as withdrawal_models
    from stockdb.apps.withdrawals import schemas as withdrawal_schemas
    from stockdb.apps.withdrawals import services as withdrawal_services

    def _make(wtype=withdrawal_models.WithdrawalTypeEnum.INSTALLATION, **overrides):
        fields = {
            "type": wtype,
            "for_branch_code": "B-1",
            "for_department_code": "D-1",
            "created_by_staff_code": "ST-1",
            "date": today,
            "install_date": today,
            "return_by": date(2026, 11, 30),
            "remarks": None,
        }
        fields.update(overrides)
        withdrawal = withdrawal_services.create_withdrawal(
            db_session,
            payload=withdrawal_schemas.WithdrawalCreate(**fields),
        )
        db_session.commit()
        return withdrawal

    return _make

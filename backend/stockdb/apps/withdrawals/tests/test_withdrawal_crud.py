from __future__ import annotations

from datetime import date

import pytest

from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.withdrawals import models as withdrawal_models
from stockdb.apps.withdrawals import schemas as withdrawal_schemas
from stockdb.apps.withdrawals import services as withdrawal_services
from stockdb.apps.withdrawals.errors import PreconditionFailed, ValidationError, WithdrawalNotFound

ItemStatus = inventory_models.ItemStatusEnum
Status = withdrawal_models.WithdrawalStatusEnum
WType = withdrawal_models.WithdrawalTypeEnum


def _payload(**fields) -> withdrawal_schemas.WithdrawalCreate:
    base = {"created_by_staff_code": "ST-1", "date": date(2026, 10, 19)}
    base.update(fields)
    return withdrawal_schemas.WithdrawalCreate(**base)


def _subjects(exc: ValidationError) -> set:
    return {entry["subject"] for entry in exc.detail}


def test_new_withdrawal_is_pending(make_withdrawal):
    withdrawal = make_withdrawal(WType.TRANSFER)

    assert withdrawal.status == Status.PENDING
    assert withdrawal.serials == []


@pytest.mark.parametrize(
    "fields,subjects",
    [
        ({"type": WType.INSTALLATION}, {"for_branch_code", "install_date"}),
        ({"type": WType.TRANSFER, "for_department_code": "D-1"}, {"for_branch_code"}),
        ({"type": WType.LENDING, "for_branch_code": "B-1"}, {"for_department_code", "return_by"}),
        (
            {"type": WType.LENDING, "for_department_code": "D-1", "return_by": date(2026, 10, 1)},
            {"return_by"},
        ),
        (
            {"type": WType.TRANSFER, "for_branch_code": "B-404", "created_by_staff_code": "ST-404"},
            {"for_branch_code", "created_by_staff_code"},
        ),
    ],
)
def test_create_reports_every_problem(db_session, directory, fields, subjects):
    with pytest.raises(ValidationError) as excinfo:
        withdrawal_services.create_withdrawal(db_session, payload=_payload(**fields))

    assert _subjects(excinfo.value) == subjects
    assert db_session.query(withdrawal_models.Withdrawal).count() == 0


def test_fields_foreign_to_the_type_are_dropped(db_session, directory):
    withdrawal = withdrawal_services.create_withdrawal(
        db_session,
        payload=_payload(
            type=WType.LENDING,
            for_branch_code="B-1",
            for_department_code="D-1",
            install_date=date(2026, 10, 20),
            return_by=date(2026, 11, 1),
        ),
    )
    db_session.commit()

    assert withdrawal.for_branch_code is None
    assert withdrawal.install_date is None
    assert withdrawal.for_department_code == "D-1"
    assert withdrawal.return_by == date(2026, 11, 1)


def test_get_missing_withdrawal(db_session):
    with pytest.raises(WithdrawalNotFound):
        withdrawal_services.get_withdrawal(db_session, 4242)


def test_update_moves_reserved_items_to_new_branch(db_session, make_items, make_withdrawal, today):
    make_items("U1")
    withdrawal = make_withdrawal(WType.INSTALLATION)
    withdrawal_services.add_items(db_session, withdrawal.id, ["U1"])

    withdrawal_services.update_withdrawal(
        db_session,
        withdrawal.id,
        payload=withdrawal_schemas.WithdrawalUpdate(
            type=WType.INSTALLATION,
            for_branch_code="B-2",
            created_by_staff_code="ST-1",
            date=today,
            install_date=date(2026, 10, 25),
        ),
    )
    db_session.commit()

    db_session.expire_all()
    assert db_session.get(withdrawal_models.Withdrawal, withdrawal.id).install_date == date(2026, 10, 25)
    assert db_session.get(inventory_models.Item, "U1").reserved_branch_code == "B-2"


def test_update_cannot_change_type(db_session, make_withdrawal, today):
    withdrawal = make_withdrawal(WType.INSTALLATION)

    with pytest.raises(ValidationError):
        withdrawal_services.update_withdrawal(
            db_session,
            withdrawal.id,
            payload=withdrawal_schemas.WithdrawalUpdate(
                type=WType.TRANSFER,
                for_branch_code="B-1",
                created_by_staff_code="ST-1",
                date=today,
            ),
        )


def test_update_only_while_pending(db_session, make_withdrawal, today):
    withdrawal = make_withdrawal(WType.TRANSFER)
    withdrawal_services.change_status(db_session, withdrawal.id, "CONFIRMED")

    with pytest.raises(PreconditionFailed):
        withdrawal_services.update_withdrawal(
            db_session,
            withdrawal.id,
            payload=withdrawal_schemas.WithdrawalUpdate(
                type=WType.TRANSFER,
                for_branch_code="B-2",
                created_by_staff_code="ST-1",
                date=today,
            ),
        )


def test_remarks_stay_editable_after_confirmation(db_session, make_withdrawal):
    withdrawal = make_withdrawal(WType.LENDING)
    withdrawal_services.change_status(db_session, withdrawal.id, "CONFIRMED")

    withdrawal_services.update_remarks(db_session, withdrawal.id, remarks="Returned in original box")
    db_session.commit()

    db_session.expire_all()
    assert db_session.get(withdrawal_models.Withdrawal, withdrawal.id).remarks == "Returned in original box"


def test_list_withdrawals_filters_and_search(db_session, make_withdrawal):
    north = make_withdrawal(WType.INSTALLATION)
    south = make_withdrawal(WType.TRANSFER, for_branch_code="B-2")
    lent = make_withdrawal(WType.LENDING, return_by=date(2026, 12, 24))
    withdrawal_services.change_status(db_session, south.id, "CANCELLED")

    total, rows = withdrawal_services.list_withdrawals(
        db_session, filters=withdrawal_schemas.WithdrawalFilters(search="south")
    )
    assert total == 1
    assert rows[0].id == south.id

    total, rows = withdrawal_services.list_withdrawals(
        db_session, filters=withdrawal_schemas.WithdrawalFilters(status=Status.PENDING)
    )
    assert {row.id for row in rows} == {north.id, lent.id}

    total, rows = withdrawal_services.list_withdrawals(
        db_session,
        filters=withdrawal_schemas.WithdrawalFilters(return_from=date(2026, 12, 1)),
    )
    assert [row.id for row in rows] == [lent.id]

    total, rows = withdrawal_services.list_withdrawals(
        db_session, filters=withdrawal_schemas.WithdrawalFilters(search="field service")
    )
    assert [row.id for row in rows] == [lent.id]


def test_list_withdrawal_items(db_session, make_items, make_withdrawal):
    make_items("LI-1", "LI-2", "ZZ-3")
    withdrawal = make_withdrawal(WType.TRANSFER)
    withdrawal_services.add_items(db_session, withdrawal.id, ["LI-1", "LI-2", "ZZ-3"])

    total, rows = withdrawal_services.list_withdrawal_items(db_session, withdrawal.id, search="li-")
    assert total == 2
    assert [row.serial_no for row in rows] == ["LI-1", "LI-2"]

    total, _ = withdrawal_services.list_withdrawal_items(db_session, withdrawal.id, is_broken=True)
    assert total == 0

    total, _ = withdrawal_services.list_withdrawal_items(
        db_session, withdrawal.id, status=ItemStatus.TRANSFERRED
    )
    assert total == 3

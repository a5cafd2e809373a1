from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from stockdb.apps.withdrawals import models as withdrawal_models
from stockdb.apps.withdrawals import services as withdrawal_services
from stockdb.apps.withdrawals.errors import NotDeletable, PreconditionFailed

WType = withdrawal_models.WithdrawalTypeEnum


def _link_count(db, withdrawal_id: int) -> int:
    return (
        db.query(withdrawal_models.WithdrawalItem)
        .filter(withdrawal_models.WithdrawalItem.withdrawal_id == withdrawal_id)
        .count()
    )


def _cancelled_with_leftover_link(db, make_items, make_withdrawal, serial_no: str):
    make_items(serial_no)
    withdrawal = make_withdrawal(WType.INSTALLATION)
    withdrawal_services.change_status(db, withdrawal.id, "CANCELLED")
    # A link written behind the service's back, e.g. by an older client.
    db.add(withdrawal_models.WithdrawalItem(withdrawal_id=withdrawal.id, serial_no=serial_no))
    db.commit()
    return withdrawal


@pytest.mark.parametrize("prior", [None, "CONFIRMED"])
def test_only_cancelled_withdrawals_can_be_deleted(db_session, make_withdrawal, prior):
    withdrawal = make_withdrawal(WType.INSTALLATION)
    if prior:
        withdrawal_services.change_status(db_session, withdrawal.id, prior)

    with pytest.raises(PreconditionFailed):
        withdrawal_services.delete_withdrawal(db_session, withdrawal.id)

    assert db_session.get(withdrawal_models.Withdrawal, withdrawal.id) is not None


def test_delete_removes_header_and_links(db_session, make_items, make_withdrawal):
    withdrawal = _cancelled_with_leftover_link(db_session, make_items, make_withdrawal, "DL1")
    withdrawal_id = withdrawal.id

    withdrawal_services.delete_withdrawal(db_session, withdrawal_id)

    db_session.expire_all()
    assert db_session.get(withdrawal_models.Withdrawal, withdrawal_id) is None
    assert _link_count(db_session, withdrawal_id) == 0


def test_failed_header_delete_rolls_back_link_purge(db_session, make_items, make_withdrawal, monkeypatch):
    withdrawal = _cancelled_with_leftover_link(db_session, make_items, make_withdrawal, "DL2")

    def _blocked(db, withdrawal):
        raise IntegrityError("DELETE FROM withdrawals", {}, Exception("still referenced"))

    monkeypatch.setattr(withdrawal_services, "_delete_header", _blocked)

    with pytest.raises(NotDeletable) as excinfo:
        withdrawal_services.delete_withdrawal(db_session, withdrawal.id)

    assert excinfo.value.detail == [{"subject": f"withdrawal:{withdrawal.id}", "reason": "This withdrawal cannot be deleted."}]
    db_session.expire_all()
    assert db_session.get(withdrawal_models.Withdrawal, withdrawal.id) is not None
    assert _link_count(db_session, withdrawal.id) == 1

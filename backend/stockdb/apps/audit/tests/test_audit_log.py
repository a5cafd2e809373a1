from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from stockdb.apps.audit import models as audit_models
from stockdb.apps.audit import services as audit_services


def test_log_event_writes_record(db_session):
    event = audit_services.log_event(
        db_session,
        entity_type="withdrawal",
        entity_id="1",
        action="create",
        actor_staff_code="ST-1",
        after={"status": "PENDING"},
        metadata={"source": "counter"},
    )

    db_session.commit()
    assert event is not None
    assert event.entity_type == "withdrawal"
    assert event.metadata_json == {"source": "counter"}


def _failing_insert(db, *, data):
    raise OperationalError("INSERT INTO audit_events", {}, Exception("disk full"))


def test_non_critical_failure_is_swallowed(db_session, monkeypatch):
    monkeypatch.setattr(audit_services, "create_audit_event", _failing_insert)

    event = audit_services.log_event(db_session, entity_type="withdrawal", entity_id="1", action="update_remarks")

    assert event is None
    assert db_session.query(audit_models.AuditEvent).count() == 0


def test_critical_failure_raises(db_session, monkeypatch):
    monkeypatch.setattr(audit_services, "create_audit_event", _failing_insert)

    with pytest.raises(OperationalError):
        audit_services.log_event(
            db_session,
            entity_type="withdrawal",
            entity_id="1",
            action="transition",
            critical=True,
        )


def test_list_audit_events_filters_by_entity(db_session):
    for entity_id, action in [("1", "create"), ("1", "transition"), ("2", "create")]:
        audit_services.log_event(db_session, entity_type="withdrawal", entity_id=entity_id, action=action)
    db_session.commit()

    events = audit_services.list_audit_events(db_session, entity_type="withdrawal", entity_id="1")

    assert sorted(event.action for event in events) == ["create", "transition"]


def test_schema_builds_on_a_fresh_engine():
    from sqlalchemy import inspect

    from stockdb.database import Base, build_engine

    index_names = [index.name for table in Base.metadata.sorted_tables for index in table.indexes]
    assert len(index_names) == len(set(index_names))

    engine = build_engine("sqlite+pysqlite:///:memory:")
    try:
        Base.metadata.create_all(bind=engine)
        names = {index["name"] for index in inspect(engine).get_indexes("audit_events")}
    finally:
        engine.dispose()
    assert "ix_audit_events_action" in names
    assert "ix_audit_events_entity" in names


def test_models_register_once_under_the_package():
    from stockdb.apps.audit.models import AuditEvent
    from stockdb.database import Base

    assert Base.metadata.tables["audit_events"] is AuditEvent.__table__
    assert AuditEvent.__module__ == "stockdb.apps.audit.models"

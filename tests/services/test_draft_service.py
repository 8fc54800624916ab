"""
Tests for DraftService: saving, resuming and clearing wizard drafts.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from booking_engines.validation_rules import RuleBook
from booking_engines.wizard_session import WizardNavigator
from booking_kernel.domain.funding import FundingSource
from booking_kernel.domain.wizard import StepStatus
from booking_kernel.exceptions import DraftCorruptError
from booking_kernel.models.wizard_draft import DRAFT_FORMAT_VERSION, WizardDraft
from booking_services.draft_service import DraftService, to_json_value
from tests.factories import make_graph, required_rule

DRAFT_KEY = "reservation:walk-in:42"


@pytest.fixture
def service(db_session, test_actor_id, seven_step_navigator):
    return DraftService(db_session, test_actor_id, seven_step_navigator)


def _progressed_session(navigator):
    session = navigator.start({"field_1": "a", "field_2": "b"})
    session = navigator.go_to_step(session, 2)
    session = navigator.go_to_step(session, 3)
    session = navigator.go_to_step(session, 5)
    session = navigator.skip_step(session, 6)
    return navigator.update_data(session, {"field_5": "e"}, step=5)


class TestToJsonValue:
    def test_converts_domain_values(self):
        value = {
            "pickup_at": datetime(2025, 3, 1, 10, 30),
            "birth_date": date(1990, 5, 17),
            "daily_rate": Decimal("250.00"),
            "method": FundingSource.CASH,
            "lines": ({"qty": 1},),
            1: "int key",
        }
        assert to_json_value(value) == {
            "pickup_at": "2025-03-01T10:30:00",
            "birth_date": "1990-05-17",
            "daily_rate": "250.00",
            "method": "cash",
            "lines": [{"qty": 1}],
            "1": "int key",
        }

    def test_plain_values_unchanged(self):
        assert to_json_value(True) is True
        assert to_json_value(None) is None
        assert to_json_value(3) == 3


class TestSaveAndLoad:
    def test_round_trip(self, service, seven_step_navigator):
        session = _progressed_session(seven_step_navigator)
        service.save(DRAFT_KEY, session)

        loaded = service.load(DRAFT_KEY)

        assert loaded == session
        assert loaded.active_step == 5
        assert loaded.last_modified_step == 5
        assert seven_step_navigator.status_of(loaded, 3) is StepStatus.HAS_ERRORS
        assert seven_step_navigator.status_of(loaded, 6) is StepStatus.SKIPPED
        assert loaded.record(3).last_errors == {"field_3": "field_3 is required"}

    def test_save_overwrites(self, service, seven_step_navigator, db_session):
        session = seven_step_navigator.start()
        service.save(DRAFT_KEY, session)
        session = seven_step_navigator.go_to_step(session, 4)
        service.save(DRAFT_KEY, session)

        assert db_session.query(WizardDraft).count() == 1
        assert service.load(DRAFT_KEY).active_step == 4

    def test_stored_shape(self, service, seven_step_navigator):
        session = seven_step_navigator.start({"pickup_at": date(2025, 3, 1)})
        draft = service.save(DRAFT_KEY, session)

        assert draft.format_version == DRAFT_FORMAT_VERSION
        assert draft.data_bag == {"pickup_at": "2025-03-01"}
        assert draft.step_records["1"] == {
            "completed": False,
            "skipped": False,
            "visited": True,
            "last_errors": {},
        }

    def test_missing_draft(self, service):
        assert service.load("nope") is None

    def test_logs(self, service, seven_step_navigator, captured_logs):
        service.save(DRAFT_KEY, seven_step_navigator.start())
        service.load(DRAFT_KEY)
        records = {r["message"]: r for r in captured_logs()}
        assert records["wizard_draft_saved"]["draft_key"] == DRAFT_KEY
        assert records["wizard_draft_saved"]["actor_id"] == str(service.actor_id)
        assert records["wizard_draft_loaded"]["draft_key"] == DRAFT_KEY


class TestGraphChanges:
    def test_load_into_shorter_graph(self, db_session, test_actor_id, seven_step_navigator):
        DraftService(db_session, test_actor_id, seven_step_navigator).save(
            DRAFT_KEY, _progressed_session(seven_step_navigator)
        )
        shorter = WizardNavigator(
            make_graph(5), RuleBook.from_rule_sets([required_rule(1, "field_1")])
        )

        loaded = DraftService(db_session, test_actor_id, shorter).load(DRAFT_KEY)

        assert loaded.step_count == 5
        assert loaded.active_step == 5

    def test_missing_record_fields_default(self, service, db_session, test_actor_id):
        db_session.add(
            WizardDraft(
                draft_key=DRAFT_KEY,
                active_step=2,
                step_records={"1": {"completed": True}},
                data_bag={},
                created_by_id=test_actor_id,
            )
        )
        db_session.flush()

        loaded = service.load(DRAFT_KEY)

        assert loaded.record(1).completed
        assert not loaded.record(1).skipped
        assert loaded.record(2).visited


class TestCorruptDrafts:
    def _store(self, db_session, test_actor_id, **fields):
        values = {"active_step": 1, "step_records": {}, "data_bag": {}}
        values.update(fields)
        db_session.add(WizardDraft(draft_key=DRAFT_KEY, created_by_id=test_actor_id, **values))
        db_session.flush()

    def test_active_step_outside_graph(self, service, db_session, test_actor_id, captured_logs):
        self._store(db_session, test_actor_id, active_step=12)
        with pytest.raises(DraftCorruptError) as exc_info:
            service.load(DRAFT_KEY)
        assert exc_info.value.code == "DRAFT_CORRUPT"
        assert exc_info.value.draft_key == DRAFT_KEY
        assert any(r["message"] == "wizard_draft_corrupt" for r in captured_logs())

    def test_completed_and_skipped(self, service, db_session, test_actor_id):
        self._store(
            db_session, test_actor_id, step_records={"2": {"completed": True, "skipped": True}}
        )
        with pytest.raises(DraftCorruptError):
            service.load(DRAFT_KEY)

    def test_non_numeric_step_key(self, service, db_session, test_actor_id):
        self._store(db_session, test_actor_id, step_records={"first": {}})
        with pytest.raises(DraftCorruptError):
            service.load(DRAFT_KEY)

    def test_data_bag_not_a_mapping(self, service, db_session, test_actor_id):
        self._store(db_session, test_actor_id, data_bag=["not", "a", "dict"])
        with pytest.raises(DraftCorruptError):
            service.load(DRAFT_KEY)


class TestClear:
    def test_clear(self, service, seven_step_navigator, captured_logs):
        service.save(DRAFT_KEY, seven_step_navigator.start())
        assert service.clear(DRAFT_KEY)
        assert service.load(DRAFT_KEY) is None
        assert any(r["message"] == "wizard_draft_cleared" for r in captured_logs())

    def test_clear_missing(self, service):
        assert not service.clear(DRAFT_KEY)

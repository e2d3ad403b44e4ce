from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.errors import StorageFailure, ValidationError
from app.models.registry import Headcount
from app.services.headcount import Headcounts, _insert_for


class TestHeadcounts:
    def test_missing_row_reads_zero(self, db_session):
        assert Headcounts.get(db_session, "D01", "L404") == 0
        assert Headcounts.get_row(db_session, "D01", "L404") is None

    def test_increment_creates_then_updates(self, db_session):
        first = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        second = datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)
        Headcounts.increment(db_session, "D01", "L001", first)
        Headcounts.increment(db_session, "D01", "L001", second)
        db_session.commit()
        row = Headcounts.get_row(db_session, "D01", "L001")
        assert row.total_count == 2
        assert row.last_updated.replace(tzinfo=timezone.utc) == second
        assert db_session.query(Headcount).count() == 1

    def test_congregations_are_independent(self, db_session):
        Headcounts.increment(db_session, "D01", "L001")
        Headcounts.increment(db_session, "D01", "L002")
        Headcounts.increment(db_session, "D02", "L001")
        Headcounts.decrement(db_session, "D01", "L001")
        db_session.commit()
        assert Headcounts.get(db_session, "D01", "L001") == 0
        assert Headcounts.get(db_session, "D01", "L002") == 1
        assert Headcounts.get(db_session, "D02", "L001") == 1

    def test_decrement_never_goes_negative(self, db_session):
        Headcounts.increment(db_session, "D01", "L001")
        Headcounts.decrement(db_session, "D01", "L001")
        Headcounts.decrement(db_session, "D01", "L001")
        db_session.commit()
        assert Headcounts.get(db_session, "D01", "L001") == 0

    def test_decrement_without_row_is_a_no_op(self, db_session):
        Headcounts.decrement(db_session, "D01", "L404")
        db_session.commit()
        assert db_session.query(Headcount).count() == 0

    def test_list(self, db_session):
        for _ in range(3):
            Headcounts.increment(db_session, "D01", "L002")
        Headcounts.increment(db_session, "D01", "L001")
        Headcounts.increment(db_session, "D02", "L009")
        db_session.commit()
        rows = Headcounts.list(
            db_session,
            district_code="D01",
            order_by="total_count",
            order_dir="desc",
            limit=10,
            offset=0,
        )
        assert [(r.local_code, r.total_count) for r in rows] == [("L002", 3), ("L001", 1)]

    def test_list_invalid_order(self, db_session):
        with pytest.raises(ValidationError):
            Headcounts.list(
                db_session,
                district_code=None,
                order_by="district",
                order_dir="asc",
                limit=10,
                offset=0,
            )

    def test_unsupported_dialect(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "mysql"
        with pytest.raises(StorageFailure):
            _insert_for(db)

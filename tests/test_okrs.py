"""
Tests for the OKR service.
"""
from datetime import date
from decimal import Decimal

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.services.okrs import (
    archive_okr,
    archive_weekly_okrs,
    create_okr,
    list_okrs,
    okrs_due_soon,
    progress_percent,
    update_okr,
)


def _ev(v):
    return v.value if hasattr(v, "value") else v


class TestProgress:
    def test_ratio(self):
        assert progress_percent(Decimal("3"), Decimal("4")) == 75

    def test_capped_at_100(self):
        assert progress_percent(Decimal("12"), Decimal("10")) == 100

    @pytest.mark.parametrize("current,target", [
        (None, Decimal("10")),
        (Decimal("5"), None),
        (Decimal("5"), Decimal("0")),
    ])
    def test_unmeasurable(self, current, target):
        assert progress_percent(current, target) == 0


class TestOKRService:
    def test_create_and_list(self, db):
        first = create_okr(db, "Reduzir churn", target_value=Decimal("10"))
        second = create_okr(db, "  Fechar 5 contratos ", type="weekly")
        assert second.title == "Fechar 5 contratos"
        assert _ev(first.status) == "active"

        assert [o.id for o in list_okrs(db)] == [second.id, first.id]
        assert [o.id for o in list_okrs(db, type="weekly")] == [second.id]

    def test_blank_title_rejected(self, db):
        with pytest.raises(ValidationError):
            create_okr(db, "   ")

    def test_end_before_start_rejected(self, db):
        with pytest.raises(ValidationError):
            create_okr(db, "Q1", start_date=date(2024, 3, 1), end_date=date(2024, 1, 1))

    def test_update(self, db):
        okr = create_okr(db, "Reduzir churn", target_value=Decimal("10"))
        okr = update_okr(db, okr.id, current_value=Decimal("4"))
        assert okr.current_value == Decimal("4")

        with pytest.raises(ValidationError):
            update_okr(db, okr.id, owner="ana")
        with pytest.raises(ValidationError):
            update_okr(db, okr.id, title="")
        with pytest.raises(NotFoundError):
            update_okr(db, 999, current_value=Decimal("1"))

    def test_archive_hides_from_list(self, db):
        okr = create_okr(db, "Reduzir churn")
        archive_okr(db, okr.id)
        assert list_okrs(db) == []

    def test_archive_weekly_only_touches_active_weekly(self, db):
        create_okr(db, "Semana 1", type="weekly")
        create_okr(db, "Semana 1b", type="weekly")
        annual = create_okr(db, "Ano", type="annual")
        assert archive_weekly_okrs(db) == 2
        assert [o.id for o in list_okrs(db)] == [annual.id]
        assert archive_weekly_okrs(db) == 0

    def test_due_soon_window(self, db):
        today = date(2024, 3, 10)
        inside = create_okr(db, "Sprint", end_date=date(2024, 3, 12))
        create_okr(db, "Longe", end_date=date(2024, 4, 30))
        create_okr(db, "Vencido", end_date=date(2024, 3, 9))
        done = create_okr(db, "Feito", end_date=date(2024, 3, 11))
        update_okr(db, done.id, status="completed")

        assert [o.id for o in okrs_due_soon(db, today, within_days=3)] == [inside.id]

"""
Aggregation reporting: per-manager roll-ups and the CS health score.

Computation rules
-----------------
label buckets
  Canonical labels count as-is. Legacy colour tokens are folded
  (green->otimo, blue->bom, yellow/orange->medio, red->ruim). NULL or
  unknown tokens land in `medio` and are also counted in `unmapped_labels`.

churns_this_month
  status == churned AND archived_at >= local midnight of the 1st of the
  current month in the civil timezone.

documented_yesterday
  Manager moved at least one tracking card at or after local midnight of
  yesterday in the civil timezone (same boundary the delay check uses).

health_score
  round_half_up(normal / total * 100); 100 when total == 0.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.client import Client, ClientLabel, ClientStatus, CSClassification
from app.models.profile import Profile
from app.models.tracking import ClientDailyTracking
from app.services.classification import normalize_label
from app.services.delay_tracker import (
    TimeZoneLike,
    as_utc,
    civil_date,
    civil_date_key,
    civil_day_start,
    resolve_zone,
)

logger = logging.getLogger(__name__)

ADS_MANAGER_ROLE = "gestor_ads"

_CLASSIFICATIONS = [c.value for c in CSClassification]


def _ev(v) -> Optional[str]:
    if v is None:
        return None
    return v.value if hasattr(v, "value") else str(v)


@dataclass
class ManagerStats:
    manager_id: int
    manager_name: str
    otimo: int = 0
    bom: int = 0
    medio: int = 0
    ruim: int = 0
    unmapped_labels: int = 0
    total_clients: int = 0
    churns_this_month: int = 0
    documented_yesterday: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def health_score(normal: int, total: int) -> int:
    if total == 0:
        return 100
    ratio = Decimal(normal) / Decimal(total) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def month_start(now: datetime, time_zone: TimeZoneLike = None) -> datetime:
    today = civil_date(now, time_zone)
    return civil_day_start(today.replace(day=1), time_zone)


def yesterday_start(now: datetime, time_zone: TimeZoneLike = None) -> datetime:
    today = civil_date(now, time_zone)
    return civil_day_start(today - timedelta(days=1), time_zone)


def summarize_by_manager(
    managers: Iterable,
    clients: Iterable,
    churns: Iterable,
    documentation_log: Iterable,
    now: datetime,
    time_zone: TimeZoneLike = None,
) -> list[ManagerStats]:
    """
    managers           objects with `id`, `name`
    clients            active clients (`assigned_ads_manager`, `client_label`)
    churns             clients with `status`, `archived_at`, `assigned_ads_manager`
    documentation_log  tracking rows with `manager_id`, `last_moved_at`
    """
    zone = resolve_zone(time_zone)
    since_month = month_start(now, zone)
    since_yesterday = yesterday_start(now, zone)

    stats = {m.id: ManagerStats(manager_id=m.id, manager_name=m.name) for m in managers}

    for client in clients:
        row = stats.get(client.assigned_ads_manager)
        if row is None:
            continue
        label = normalize_label(client.client_label)
        if label is None:
            label = ClientLabel.medio.value
            row.unmapped_labels += 1
        setattr(row, label, getattr(row, label) + 1)
        row.total_clients += 1

    for client in churns:
        row = stats.get(client.assigned_ads_manager)
        if row is None or client.archived_at is None:
            continue
        if _ev(client.status) == ClientStatus.churned.value and as_utc(client.archived_at) >= since_month:
            row.churns_this_month += 1

    documented = {
        record.manager_id
        for record in documentation_log
        if record.last_moved_at is not None and as_utc(record.last_moved_at) >= since_yesterday
    }
    for manager_id, row in stats.items():
        row.documented_yesterday = manager_id in documented

    return list(stats.values())


def cs_overview(
    clients: Iterable,
    managers: Iterable,
    now: datetime,
    time_zone: TimeZoneLike = None,
    no_contact_days: Optional[int] = None,
) -> dict:
    """Dashboard summary for the customer-success board."""
    zone = resolve_zone(time_zone)
    no_contact_days = no_contact_days if no_contact_days is not None else settings.NO_CONTACT_DAYS
    today_key = civil_date_key(now, zone)
    contact_cutoff = as_utc(now) - timedelta(days=no_contact_days)

    totals = {c: 0 for c in _CLASSIFICATIONS}
    names = {m.id: m.name for m in managers}
    per_manager: dict[int, dict] = {}
    without_contact = 0
    contacted_today = 0
    clients = list(clients)

    for client in clients:
        classification = _ev(client.cs_classification) or CSClassification.normal.value
        totals[classification] += 1

        last = client.last_cs_contact_at
        if last is None or as_utc(last) <= contact_cutoff:
            without_contact += 1
        elif civil_date_key(last, zone) == today_key:
            contacted_today += 1

        manager_id = client.assigned_ads_manager
        if manager_id is None:
            continue
        if manager_id not in per_manager:
            per_manager[manager_id] = {
                "manager_id": manager_id,
                "manager_name": names.get(manager_id, ""),
                "total": 0,
                **{c: 0 for c in _CLASSIFICATIONS},
            }
        per_manager[manager_id][classification] += 1
        per_manager[manager_id]["total"] += 1

    managers_sorted = sorted(
        per_manager.values(),
        key=lambda m: m[CSClassification.alerta.value] + m[CSClassification.critico.value],
        reverse=True,
    )

    return {
        "total_clients": len(clients),
        "by_classification": totals,
        "without_contact": without_contact,
        "contacted_today": contacted_today,
        "health_score": health_score(totals[CSClassification.normal.value], len(clients)),
        "managers": managers_sorted,
    }


# ---------------------------------------------------------------------------
# DB-backed entry points
# ---------------------------------------------------------------------------

def _active_clients(db: Session) -> list[Client]:
    return (
        db.query(Client)
        .filter(Client.archived == False)  # noqa: E712
        .order_by(Client.id.asc())
        .all()
    )


def build_manager_report(
    db: Session,
    now: datetime,
    time_zone: TimeZoneLike = None,
) -> list[ManagerStats]:
    managers = (
        db.query(Profile)
        .filter(Profile.role == ADS_MANAGER_ROLE)
        .order_by(Profile.name.asc())
        .all()
    )
    churns = db.query(Client).filter(Client.status == ClientStatus.churned).all()
    since = yesterday_start(now, time_zone)
    log = (
        db.query(ClientDailyTracking)
        .filter(ClientDailyTracking.last_moved_at >= since)
        .all()
    )
    result = summarize_by_manager(managers, _active_clients(db), churns, log, now, time_zone)
    logger.debug("manager report built for %d managers", len(result))
    return result


def build_cs_overview(
    db: Session,
    now: datetime,
    time_zone: TimeZoneLike = None,
) -> dict:
    managers = db.query(Profile).all()
    return cs_overview(_active_clients(db), managers, now, time_zone)
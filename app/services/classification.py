"""
Classification engine: client label -> customer-success classification.

Rules (ordered, first match wins)
---------------------------------
  1. medio        -> alerta   (reason mentions "Médio")
  2. ruim         -> critico  (reason mentions "Ruim")
  3. otimo | bom  -> normal   (reason cleared, reset=True, whatever the previous label)
  4. None         -> no change; the stored classification is left untouched

`classify` is pure. The write path `update_client_label` stores the label and
the derived classification in a single UPDATE so the two never drift.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.db.base import commit_or_raise
from app.models.client import Client, ClientLabel, CSClassification
from app.services.clients import get_client

logger = logging.getLogger(__name__)


_LABEL_DISPLAY = {
    ClientLabel.medio.value: "Médio",
    ClientLabel.ruim.value: "Ruim",
}

_LABEL_TO_CLASSIFICATION = {
    ClientLabel.medio.value: CSClassification.alerta.value,
    ClientLabel.ruim.value: CSClassification.critico.value,
}

_RESET_LABELS = frozenset({ClientLabel.otimo.value, ClientLabel.bom.value})

# Colour tokens written by the first version of the label picker.
LEGACY_LABELS = {
    "green": ClientLabel.otimo.value,
    "blue": ClientLabel.bom.value,
    "yellow": ClientLabel.medio.value,
    "orange": ClientLabel.medio.value,
    "red": ClientLabel.ruim.value,
}


@dataclass(frozen=True)
class ClassificationResult:
    classification: Optional[str]
    reason: Optional[str]
    reset: bool


def _ev(v) -> Optional[str]:
    if v is None:
        return None
    return v.value if hasattr(v, "value") else str(v)


def _check_label(label: Optional[str]) -> Optional[str]:
    label = _ev(label)
    if label is None:
        return None
    if label not in ClientLabel.__members__:
        raise ValidationError(f"Unknown client label {label!r}.", field="label")
    return label


# ---------------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------------

def classify(label: Optional[str], previous_label: Optional[str] = None) -> ClassificationResult:
    """Map a label to its classification. `previous_label` never changes the outcome."""
    label = _check_label(label)

    if label in _LABEL_TO_CLASSIFICATION:
        return ClassificationResult(
            classification=_LABEL_TO_CLASSIFICATION[label],
            reason=f'Automatic classification: label changed to "{_LABEL_DISPLAY[label]}"',
            reset=False,
        )
    if label in _RESET_LABELS:
        return ClassificationResult(
            classification=CSClassification.normal.value,
            reason=None,
            reset=True,
        )
    return ClassificationResult(classification=None, reason=None, reset=False)


def normalize_label(raw: Optional[str]) -> Optional[str]:
    """
    Fold a stored label (canonical, legacy colour token, or junk) into a
    canonical ClientLabel value. Returns None when it cannot be mapped.
    """
    if raw is None:
        return None
    token = raw.strip().lower()
    if token in ClientLabel.__members__:
        return token
    return LEGACY_LABELS.get(token)


# ---------------------------------------------------------------------------
# Write paths
# ---------------------------------------------------------------------------

def update_client_label(
    db: Session,
    client_id: int,
    label: Optional[str],
) -> tuple[Client, ClassificationResult]:
    """
    Store a new label and, when the rules say so, the derived classification.
    Both columns go out in one UPDATE statement.
    """
    client = get_client(db, client_id)
    result = classify(label, client.client_label)

    values: dict = {"client_label": _ev(label)}
    if result.classification is not None:
        values["cs_classification"] = result.classification
        values["cs_classification_reason"] = result.reason

    db.execute(update(Client).where(Client.id == client_id).values(**values))
    commit_or_raise(db, "update_client_label")
    db.refresh(client)

    logger.info(
        "client %s label=%s classification=%s reset=%s",
        client_id, values["client_label"], _ev(client.cs_classification), result.reset,
    )
    return client, result


def set_cs_classification(
    db: Session,
    client_id: int,
    classification: str,
    reason: Optional[str] = None,
) -> Client:
    """Manual override from the CS board (e.g. moving a client to `encerrado`)."""
    classification = _ev(classification)
    if classification not in CSClassification.__members__:
        raise ValidationError(
            f"Unknown classification {classification!r}.", field="classification"
        )
    client = get_client(db, client_id)
    db.execute(
        update(Client)
        .where(Client.id == client_id)
        .values(cs_classification=classification, cs_classification_reason=reason)
    )
    commit_or_raise(db, "set_cs_classification")
    db.refresh(client)
    return client


"""
Reconciliation outbox.

When the gateway has confirmed a payment but the store cannot be written, the
signed completion is parked here as a JSON document so it can be replayed once
the store is back (``PaymentOrchestrator.replay_outbox``). Entries that fail for
good are moved to ``failed/`` instead of being deleted.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from quoteportal.integrations.contracts.interfaces import SignedPayload

logger = logging.getLogger(__name__)

FAILED_DIRNAME = "failed"


@dataclass
class OutboxEntry:
    entry_id: str
    quotation_id: str
    payment_id: str
    body: str
    signature: Optional[str]
    created_at: str
    attempts: int = 0
    last_error: Optional[str] = None

    @property
    def signed_payload(self) -> SignedPayload:
        return SignedPayload(body=self.body.encode("utf-8"), signature=self.signature)


class ReconciliationOutbox:
    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def record(self, quotation_id: str, payment_id: str, payload: SignedPayload, error: Optional[str] = None) -> OutboxEntry:
        entry = OutboxEntry(
            entry_id=uuid4().hex,
            quotation_id=quotation_id,
            payment_id=payment_id,
            body=payload.body.decode("utf-8", errors="replace"),
            signature=payload.signature,
            created_at=datetime.now(timezone.utc).isoformat(),
            last_error=error,
        )
        self._write(entry)
        logger.warning("Parked payment %s for quotation %s in outbox (%s)", payment_id, quotation_id, entry.entry_id)
        return entry

    def pending(self) -> List[OutboxEntry]:
        return self._load(self.directory)

    def _load(self, directory: Path) -> List[OutboxEntry]:
        entries: List[OutboxEntry] = []
        for file_path in sorted(directory.glob("*.json")):
            try:
                entries.append(OutboxEntry(**json.loads(file_path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, TypeError):
                logger.exception("Unreadable outbox entry: %s", file_path)
        entries.sort(key=lambda e: e.created_at)
        return entries

    def mark_attempt(self, entry: OutboxEntry, error: str) -> OutboxEntry:
        entry.attempts += 1
        entry.last_error = error
        self._write(entry)
        return entry

    def remove(self, entry: OutboxEntry) -> None:
        try:
            self._path(entry.entry_id).unlink()
        except FileNotFoundError:
            pass

    def quarantine(self, entry: OutboxEntry, error: str) -> Path:
        """Move an entry that can never reconcile into ``failed/`` for manual review."""
        entry.attempts += 1
        entry.last_error = error
        failed_dir = self.directory / FAILED_DIRNAME
        failed_dir.mkdir(parents=True, exist_ok=True)
        target = self._write(entry, failed_dir / f"{entry.entry_id}.json")
        self.remove(entry)
        logger.error(
            "Quarantined outbox entry %s (quotation %s, payment %s): %s",
            entry.entry_id, entry.quotation_id, entry.payment_id, error,
        )
        return target

    def failed(self) -> List[OutboxEntry]:
        return self._load(self.directory / FAILED_DIRNAME)

    def _path(self, entry_id: str) -> Path:
        return self.directory / f"{entry_id}.json"

    def _write(self, entry: OutboxEntry, target: Optional[Path] = None) -> Path:
        target = target or self._path(entry.entry_id)
        tmp = target.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(entry), indent=2), encoding="utf-8")
        os.replace(tmp, target)
        return target

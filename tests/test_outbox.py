import json

from quoteportal.integrations.contracts.interfaces import SignedPayload
from quoteportal.payments.outbox import ReconciliationOutbox


def test_record_writes_one_json_document(tmp_path):
    outbox = ReconciliationOutbox(tmp_path / "outbox")
    entry = outbox.record("q-1", "pay_1", SignedPayload(body=b'{"a":1}', signature="sig"), error="db down")

    files = list((tmp_path / "outbox").glob("*.json"))
    assert [f.name for f in files] == [f"{entry.entry_id}.json"]
    body = json.loads(files[0].read_text(encoding="utf-8"))
    assert body["quotation_id"] == "q-1"
    assert body["signature"] == "sig"
    assert body["last_error"] == "db down"
    assert not list((tmp_path / "outbox").glob("*.tmp"))


def test_pending_round_trips_payload_and_attempts(tmp_path):
    outbox = ReconciliationOutbox(tmp_path)
    entry = outbox.record("q-1", "pay_1", SignedPayload(body=b'{"a":1}', signature="sig"))
    outbox.mark_attempt(entry, "still down")

    [loaded] = outbox.pending()
    assert loaded.attempts == 1
    assert loaded.last_error == "still down"
    assert loaded.signed_payload == SignedPayload(body=b'{"a":1}', signature="sig")

    outbox.remove(loaded)
    outbox.remove(loaded)
    assert outbox.pending() == []


def test_unreadable_entries_are_skipped(tmp_path):
    outbox = ReconciliationOutbox(tmp_path)
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    outbox.record("q-2", "pay_2", SignedPayload(body=b"{}", signature="s"))

    assert [e.quotation_id for e in outbox.pending()] == ["q-2"]


def test_quarantine_moves_entry_out_of_pending(tmp_path):
    outbox = ReconciliationOutbox(tmp_path)
    entry = outbox.record("q-3", "pay_3", SignedPayload(body=b"{}", signature="s"))

    target = outbox.quarantine(entry, "conflict: amount mismatch")

    assert target == tmp_path / "failed" / f"{entry.entry_id}.json"
    assert outbox.pending() == []
    [kept] = outbox.failed()
    assert kept.payment_id == "pay_3"
    assert kept.attempts == 1
    assert kept.last_error == "conflict: amount mismatch"
    assert kept.signed_payload == SignedPayload(body=b"{}", signature="s")

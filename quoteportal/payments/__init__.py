from .orchestrator import PaymentOrchestrator, ReconciliationResult
from .outbox import OutboxEntry, ReconciliationOutbox

__all__ = ["OutboxEntry", "PaymentOrchestrator", "ReconciliationOutbox", "ReconciliationResult"]

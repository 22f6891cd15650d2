#!/usr/bin/env python3
"""
Replay payment completions parked in the reconciliation outbox.

Run after a store outage: every entry is re-verified and re-applied. Entries
that still cannot be written stay in the outbox for the next run; entries that
can never reconcile are moved to ``<outbox>/failed/`` for manual review.

Refuses to run against the in-memory store, which starts empty and would
fail every entry.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

from quoteportal.api.main import build_services
from quoteportal.utils.config_loader import PortalConfig, load_portal_config, uses_persistent_store

logger = logging.getLogger(__name__)

EXIT_PENDING = 1
EXIT_NO_STORE = 2


def main(config: Optional[PortalConfig] = None) -> int:
    config = config or load_portal_config()
    if not uses_persistent_store(config):
        logger.error("Outbox replay needs a persistent store: set DATABASE_URL and USE_POSTGRES=true")
        return EXIT_NO_STORE

    services = build_services(config)
    counts = services.orchestrator.replay_outbox()
    print(f"Outbox replay: {counts['reconciled']} reconciled, {counts['pending']} pending, {counts['failed']} need review")
    return EXIT_PENDING if counts["pending"] else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())

"""
Object store: MOCK client.

Issues URLs that look like signed storage links and remembers their expiry so
tests can assert on the ttl that was requested. Nothing is served from them.
"""

import hashlib
import hmac
import logging
import time
from typing import Dict, Tuple
from urllib.parse import quote, urlencode

from quoteportal.errors import UpstreamUnavailable
from quoteportal.integrations.contracts.interfaces import ObjectStore

logger = logging.getLogger(__name__)


class MockObjectStore(ObjectStore):
    def __init__(
        self,
        base_url: str = "https://storage.local/quotation-files",
        signing_key: str = "mock-storage-key",
        available: bool = True,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.signing_key = signing_key
        self.available = available
        self.issued: Dict[str, Tuple[str, int]] = {}

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        if not self.available:
            raise UpstreamUnavailable("Mock object store is unavailable")

        expires = int(time.time()) + int(ttl_seconds)
        token = hmac.new(
            self.signing_key.encode("utf-8"),
            f"{path}:{expires}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        url = f"{self.base_url}/{quote(path)}?{urlencode({'expires': expires, 'token': token})}"
        self.issued[url] = (path, int(ttl_seconds))
        logger.debug("[STORAGE MOCK] Signed %s for %ss", path, ttl_seconds)
        return url

from .object_store import MockObjectStore
from .payments import MockPaymentGateway

__all__ = ["MockObjectStore", "MockPaymentGateway"]

from .object_store import S3ObjectStore
from .payments import RazorpayClient

__all__ = ["RazorpayClient", "S3ObjectStore"]

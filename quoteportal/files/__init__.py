from .broker import DEFAULT_TTL_SECONDS, FileAccessBroker

__all__ = ["DEFAULT_TTL_SECONDS", "FileAccessBroker"]

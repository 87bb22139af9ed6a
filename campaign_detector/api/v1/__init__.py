"""Version 1 API routers."""

from . import health, upload, campaigns, highlight

__all__ = ["health", "upload", "campaigns", "highlight"]

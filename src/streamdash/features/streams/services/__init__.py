"""Stream admin services."""

from .stream_admin_service import StreamAdminService

__all__ = [
    "StreamAdminService",
]

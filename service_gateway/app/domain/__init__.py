"""
Domain workflows for the Gateway Service.

Request/response models plus the orchestration that sits between the HTTP
routes and the outbound clients.
"""

from .cdn_refresh import CdnRefreshService, RefreshResult
from .dynamics import DynamicPublisher, ImageFile

__all__ = [
    "CdnRefreshService",
    "DynamicPublisher",
    "ImageFile",
    "RefreshResult",
]

"""
Adapters package for the Gateway Service.

HTTP client wrappers for remote APIs other than Aliyun (which lives in
``app.aliyun``). Adapters share the service's pooled ``httpx.AsyncClient``
and map failures onto ``shared.errors``; they never retry.
"""

from .bilibili_client import BilibiliClient, UploadedImage

__all__ = [
    "BilibiliClient",
    "UploadedImage",
]

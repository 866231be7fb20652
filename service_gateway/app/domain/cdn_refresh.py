"""
OSS object change → CDN cache refresh.
"""

from dataclasses import dataclass

from shared.logging import get_logger

from ..aliyun.buckets import BucketUrlMap
from ..aliyun.cdn import CdnClient


@dataclass(frozen=True)
class RefreshResult:
    object_path: str
    refresh_task_id: str
    request_id: str


class CdnRefreshService:
    """Resolves an OSS object to its CDN URL and submits a refresh."""

    def __init__(self, bucket_map: BucketUrlMap, cdn_client: CdnClient):
        self.bucket_map = bucket_map
        self.cdn_client = cdn_client
        self.logger = get_logger("gateway.cdn_refresh")

    async def refresh_object(self, bucket: str, object_key: str) -> RefreshResult:
        # Unknown buckets fail here, before any request is signed or sent.
        object_path = self.bucket_map.resolve(bucket, object_key)
        response = await self.cdn_client.refresh_object_caches(object_path)
        self.logger.info(
            "CDN refresh submitted",
            bucket=bucket,
            object_key=object_key,
            object_path=object_path,
            refresh_task_id=response.refresh_task_id,
        )
        return RefreshResult(
            object_path=object_path,
            refresh_task_id=response.refresh_task_id,
            request_id=response.request_id,
        )

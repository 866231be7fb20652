"""
Aliyun integration: V3 request signing, the CDN client and bucket URL
resolution.
"""

from .buckets import BucketUrlMap
from .cdn import (
    CdnClient,
    DescribeRefreshTasksFilter,
    DescribeRefreshTasksResponse,
    RefreshObjectCachesResponse,
)
from .signature import AliyunSigner, CanonicalRequest, SignedRequest

__all__ = [
    "AliyunSigner",
    "BucketUrlMap",
    "CanonicalRequest",
    "CdnClient",
    "DescribeRefreshTasksFilter",
    "DescribeRefreshTasksResponse",
    "RefreshObjectCachesResponse",
    "SignedRequest",
]

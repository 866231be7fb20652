"""
Bucket name → CDN URL resolution for OSS objects.
"""

from types import MappingProxyType
from typing import Dict, Mapping

from shared.config import OBJECT_KEY_PLACEHOLDER
from shared.errors import UnsupportedBucket


class BucketUrlMap:
    """Read-only map from OSS bucket name to a CDN URL template.

    Object keys are substituted into ``{object_key}`` verbatim: no percent
    encoding is applied here. The URL is encoded once, as a query value, when
    the refresh request is signed.
    """

    def __init__(self, templates: Mapping[str, str]):
        self._templates: Mapping[str, str] = MappingProxyType(dict(templates))

    def __contains__(self, bucket: object) -> bool:
        return bucket in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def templates(self) -> Dict[str, str]:
        return dict(self._templates)

    def resolve(self, bucket: str, object_key: str) -> str:
        """Build the CDN URL of ``object_key`` in ``bucket``."""
        template = self._templates.get(bucket)
        if template is None:
            raise UnsupportedBucket(bucket)
        return template.replace(OBJECT_KEY_PLACEHOLDER, object_key)

"""
Bilibili dynamic publishing workflow.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from shared.errors import ValidationError
from shared.logging import get_logger

from ..adapters.bilibili_client import BilibiliClient, UploadedImage


@dataclass(frozen=True)
class ImageFile:
    data: bytes
    file_name: str
    content_type: str = "application/octet-stream"


class DynamicPublisher:
    """Validates the message, uploads attached images, then posts the dynamic."""

    def __init__(self, client: BilibiliClient):
        self.client = client
        self.logger = get_logger("gateway.dynamics")

    @staticmethod
    def parse_contents(msg: Optional[str]) -> Any:
        """``msg`` must be a non-empty JSON document."""
        if not msg:
            raise ValidationError("need msg")
        try:
            return json.loads(msg)
        except json.JSONDecodeError as exc:
            raise ValidationError("Invalid msg format", details={"error": str(exc)}) from exc

    async def publish(self, msg: Optional[str], images: Sequence[ImageFile] = ()) -> Any:
        contents = self.parse_contents(msg)

        pictures: List[UploadedImage] = []
        if images:
            self.logger.info("Uploading files", file_count=len(images))
        for image in images:
            pictures.append(await self.client.upload_image(image.data, image.file_name, image.content_type))

        return await self.client.create_dynamic(contents, pictures or None)

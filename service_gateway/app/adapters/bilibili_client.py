"""
Bilibili dynamic-posting client for Gateway.
"""

import random
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from shared.errors import NetworkError, RemoteApiError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

SERVICE_NAME = "bilibili"
UPLOAD_URL = "https://api.bilibili.com/x/dynamic/feed/draw/upload_bfs"
CREATE_DYNAMIC_URL = "https://api.bilibili.com/x/dynamic/feed/create/dyn"

_BROWSER_HEADERS = {
    "Accept": "*/*",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    "Sec-Ch-Ua": '"Not A(Brand";v="99", "Google Chrome";v="121", "Chromium";v="121"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-site",
}


@dataclass(frozen=True)
class UploadedImage:
    """An image stored on Bilibili's BFS, ready to attach to a dynamic."""

    url: str
    width: float
    height: float
    size_kb: float

    def to_pic(self) -> Dict[str, Any]:
        return {
            "img_src": self.url,
            "img_width": self.width,
            "img_height": self.height,
            "img_size": self.size_kb,
        }


class BilibiliClient:
    """Client for the web dynamic-posting API, authenticated by session cookies."""

    def __init__(self, sessdata: str, bili_jct: str, http_client: httpx.AsyncClient,
                 metrics: Optional[MetricsCollector] = None):
        self._sessdata = sessdata
        self._bili_jct = bili_jct
        self.http_client = http_client
        self.metrics = metrics
        self.logger = get_logger("gateway.bilibili_client")

    def _headers(self) -> Dict[str, str]:
        headers = dict(_BROWSER_HEADERS)
        headers["Cookie"] = f"SESSDATA={self._sessdata}; l=v"
        return headers

    async def upload_image(self, data: bytes, file_name: str, content_type: str) -> UploadedImage:
        """Upload one image and return its hosted URL and dimensions."""
        payload = await self._post(
            "upload_image",
            UPLOAD_URL,
            files={"file_up": (file_name, data, content_type)},
            data={"biz": "draw", "category": "daily", "csrf": self._bili_jct},
        )
        image = payload.get("data")
        if not isinstance(image, dict):
            raise RemoteApiError(SERVICE_NAME, "Upload response missing data", details={"response": payload})
        try:
            return UploadedImage(
                url=str(image["image_url"]),
                width=float(image["image_width"]),
                height=float(image["image_height"]),
                size_kb=len(data) / 1024.0,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteApiError(SERVICE_NAME, "Upload response malformed", details={"response": payload}) from exc

    async def create_dynamic(self, contents: Any, pictures: Optional[List[UploadedImage]] = None) -> Any:
        """Publish a dynamic; scene 2 carries pictures, scene 1 is text only.

        Returns the remote ``data`` object unchanged (may be ``None``).
        """
        dyn_req: Dict[str, Any] = {
            "content": {"contents": contents},
            "scene": 2 if pictures else 1,
            "attach_card": None,
            "upload_id": f"{time.time()}_{random.randint(1000, 9998)}",
            "meta": {"app_meta": {"from": "create.dynamic.web", "mobi_app": "web"}},
        }
        if pictures:
            dyn_req["pics"] = [picture.to_pic() for picture in pictures]

        payload = await self._post(
            "create_dynamic",
            CREATE_DYNAMIC_URL,
            params={"platform": "web", "csrf": self._bili_jct},
            json={"dyn_req": dyn_req},
        )
        # code=0 with data=null still counts as success.
        return payload.get("data")

    async def _post(self, action: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        start_time = time.perf_counter()
        try:
            response = await self.http_client.post(url, headers=self._headers(), **kwargs)
        except httpx.TransportError as exc:
            self._record(action, "network_error", start_time)
            self.logger.error("Bilibili API unreachable", action=action, error=repr(exc))
            raise NetworkError(SERVICE_NAME, f"{action} request failed: {exc!r}", details={"action": action}) from exc

        self.logger.info("Bilibili response received", action=action, status_code=response.status_code,
                         response_body=response.text)

        if not response.is_success:
            self._record(action, "http_error", start_time)
            raise RemoteApiError(
                SERVICE_NAME,
                f"{action} failed with status {response.status_code}",
                details={"action": action, "status_code": response.status_code, "body": response.text},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            self._record(action, "invalid_response", start_time)
            raise RemoteApiError(SERVICE_NAME, f"{action} returned a non-JSON body",
                                 details={"action": action, "body": response.text}) from exc

        if not isinstance(payload, dict) or payload.get("code") != 0:
            self._record(action, "api_error", start_time)
            raise RemoteApiError(
                SERVICE_NAME,
                f"{action} returned code {payload.get('code') if isinstance(payload, dict) else None}",
                details={"action": action, "body": response.text},
            )

        self._record(action, "success", start_time)
        return payload

    def _record(self, action: str, outcome: str, start_time: float) -> None:
        if self.metrics is not None:
            self.metrics.record_upstream_call(SERVICE_NAME, action, outcome, time.perf_counter() - start_time)

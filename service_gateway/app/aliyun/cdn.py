"""
Aliyun CDN control-plane client.

API docs:
- RefreshObjectCaches: https://help.aliyun.com/zh/cdn/developer-reference/api-cdn-2018-05-10-refreshobjectcaches
- DescribeRefreshTasks: https://help.aliyun.com/zh/cdn/developer-reference/api-cdn-2018-05-10-describerefreshtasks
"""

import time
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_pascal

from shared.errors import NetworkError, RemoteApiError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .signature import AliyunSigner

API_VERSION = "2018-05-10"
DEFAULT_ENDPOINT = "cdn.aliyuncs.com"
SERVICE_NAME = "aliyun_cdn"


class CdnModel(BaseModel):
    """Base for payloads exchanged with the CDN API (PascalCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class RefreshObjectCachesResponse(CdnModel):
    request_id: str
    refresh_task_id: str


class RefreshTask(CdnModel):
    task_id: str
    object_path: str
    process: str = ""
    status: str = ""
    creation_time: str = ""
    description: str = ""
    object_type: str = ""


class TasksContainer(CdnModel):
    cdn_task: List[RefreshTask] = Field(default_factory=list, alias="CDNTask")


class DescribeRefreshTasksResponse(CdnModel):
    request_id: str
    page_number: int
    page_size: int
    total_count: int
    tasks: TasksContainer = Field(default_factory=TasksContainer)


class DescribeRefreshTasksFilter(CdnModel):
    """Query filter; unset fields are not sent.

    ``page_number`` accepts 1-100000 and ``page_size`` up to 100 (server
    default 20). Out-of-range values are forwarded unchanged and left for the
    API to reject.
    """

    task_id: Optional[str] = None
    object_path: Optional[str] = None
    page_number: Optional[int] = None
    object_type: Optional[str] = None
    domain_name: Optional[str] = None
    status: Optional[str] = None
    page_size: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    resource_group_id: Optional[str] = None

    def to_query_params(self) -> Dict[str, str]:
        return {
            key: str(value)
            for key, value in self.model_dump(by_alias=True, exclude_none=True).items()
        }


ResponseT = TypeVar("ResponseT", bound=BaseModel)


class CdnClient:
    """Sends signed requests to the CDN endpoint over a shared HTTP client."""

    def __init__(
        self,
        signer: AliyunSigner,
        http_client: httpx.AsyncClient,
        endpoint: str = DEFAULT_ENDPOINT,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.signer = signer
        self.http_client = http_client
        self.endpoint = endpoint
        self.metrics = metrics
        self.logger = get_logger("gateway.aliyun.cdn")

    async def refresh_object_caches(
        self,
        object_path: str,
        *,
        object_type: str = "File",
        force: bool = False,
        area: Optional[str] = None,
    ) -> RefreshObjectCachesResponse:
        """Submit a cache refresh for ``object_path`` (a full URL)."""
        params: Dict[str, str] = {
            "ObjectPath": object_path,
            "ObjectType": object_type,
            "Force": "true" if force else "false",
        }
        if area:
            params["Area"] = area
        return await self._call("RefreshObjectCaches", params, RefreshObjectCachesResponse)

    async def describe_refresh_tasks(
        self, request_filter: Optional[DescribeRefreshTasksFilter] = None
    ) -> DescribeRefreshTasksResponse:
        """Query refresh/prefetch tasks."""
        params = (request_filter or DescribeRefreshTasksFilter()).to_query_params()
        return await self._call("DescribeRefreshTasks", params, DescribeRefreshTasksResponse)

    async def _call(self, action: str, params: Dict[str, str], response_model: Type[ResponseT]) -> ResponseT:
        """Sign, send and decode one API call; no retries."""
        signed = self.signer.sign_request("POST", self.endpoint, action, API_VERSION, query_params=params)
        url = f"https://{self.endpoint}/"
        if signed.query_string:
            url = f"{url}?{signed.query_string}"

        start_time = time.perf_counter()
        try:
            response = await self.http_client.post(url, headers=signed.headers, content=b"")
        except httpx.TransportError as exc:
            self._record(action, "network_error", start_time)
            self.logger.error("CDN API unreachable", action=action, error=repr(exc))
            raise NetworkError(
                SERVICE_NAME,
                f"{action} request failed: {exc!r}",
                details={"action": action},
            ) from exc

        if not response.is_success:
            self._record(action, "http_error", start_time)
            details: Dict[str, Any] = {
                "action": action,
                "status_code": response.status_code,
                "body": response.text,
            }
            self.logger.error("CDN API returned an error", **details)
            raise RemoteApiError(SERVICE_NAME, f"{action} failed with status {response.status_code}", details=details)

        try:
            result = response_model.model_validate_json(response.content)
        except PydanticValidationError as exc:
            self._record(action, "invalid_response", start_time)
            self.logger.error("CDN API response did not parse", action=action, body=response.text, error=str(exc))
            raise RemoteApiError(
                SERVICE_NAME,
                f"{action} returned an unexpected body",
                details={"action": action, "body": response.text},
            ) from exc

        self._record(action, "success", start_time)
        self.logger.info("CDN API call succeeded", action=action, request_id=getattr(result, "request_id", None))
        return result

    def _record(self, action: str, outcome: str, start_time: float) -> None:
        if self.metrics is not None:
            self.metrics.record_upstream_call(SERVICE_NAME, action, outcome, time.perf_counter() - start_time)

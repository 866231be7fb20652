"""
API Gateway service for Janus.

Routes (all bodies JSON unless noted):

- ``GET  /api/_ping``                            liveness, no auth
- ``POST /api/aliyun/handleOssEvents``           EventBridge OSS webhook
- ``POST /api/aliyun/cdn/refreshObjectCaches``   bearer
- ``POST /api/aliyun/cdn/describeRefreshTasks``  bearer
- ``POST /api/bilibili/createDynamic``           bearer, multipart
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request
from pydantic import BaseModel, ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from service_gateway import __version__
from shared.base_service import BaseService
from shared.config import GatewaySettings, load_settings
from shared.errors import ValidationError
from shared.metrics import MetricsCollector

from .adapters.bilibili_client import BilibiliClient
from .aliyun.buckets import BucketUrlMap
from .aliyun.cdn import CdnClient, DescribeRefreshTasksFilter
from .aliyun.signature import AliyunSigner
from .auth.authenticator import TokenAuthenticator
from .auth.tokens import Claims
from .domain.cdn_refresh import CdnRefreshService
from .domain.dynamics import DynamicPublisher, ImageFile
from .domain.models import ApiResponse, Health, OssEventPayload, RefreshObjectCachesPayload

BodyT = TypeVar("BodyT", bound=BaseModel)


async def parse_body(request: Request, model: Type[BodyT]) -> BodyT:
    """Read and validate a JSON body; only called once the caller is authenticated."""
    try:
        return model.model_validate(await request.json())
    except PydanticValidationError as exc:
        raise ValidationError("Invalid request body", details={"errors": exc.errors(include_url=False)}) from exc
    except ValueError as exc:
        raise ValidationError("Malformed JSON body", details={"error": str(exc)}) from exc


class GatewayService(BaseService):
    """API Gateway service implementation."""

    version = __version__

    def __init__(self, settings: GatewaySettings, http_client: Optional[httpx.AsyncClient] = None,
                 metrics: Optional[MetricsCollector] = None):
        super().__init__("gateway", settings, metrics)
        if not settings.jwt.public_key:
            raise ValueError("jwt.public_key must be configured to serve requests")

        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=settings.http.timeout_seconds,
                limits=httpx.Limits(max_connections=settings.http.max_connections),
            )
            self.on_shutdown(http_client.aclose)
        self.http_client = http_client

        self.authenticator = TokenAuthenticator(settings.jwt.public_key, metrics=self.metrics)

        self.cdn_client: Optional[CdnClient] = None
        self.cdn_refresh: Optional[CdnRefreshService] = None
        if settings.aliyun is not None:
            signer = AliyunSigner(settings.aliyun.access_key_id, settings.aliyun.access_key_secret)
            self.cdn_client = CdnClient(
                signer,
                self.http_client,
                endpoint=settings.aliyun.cdn_endpoint,
                metrics=self.metrics,
            )
            self.cdn_refresh = CdnRefreshService(BucketUrlMap(settings.aliyun.bucket_url_map), self.cdn_client)
        else:
            self.logger.warning("Aliyun is not configured; CDN routes are disabled")

        self.dynamic_publisher: Optional[DynamicPublisher] = None
        if settings.bilibili is not None:
            self.dynamic_publisher = DynamicPublisher(BilibiliClient(
                settings.bilibili.sessdata,
                settings.bilibili.bili_jct,
                self.http_client,
                metrics=self.metrics,
            ))
        else:
            self.logger.warning("Bilibili is not configured; dynamic posting is disabled")

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    def _check_dependencies(self) -> Dict[str, str]:
        return {
            "aliyun": "configured" if self.cdn_client is not None else "disabled",
            "bilibili": "configured" if self.dynamic_publisher is not None else "disabled",
        }

    def _require_cdn(self) -> CdnClient:
        if self.cdn_client is None:
            raise ValidationError("Aliyun is not configured")
        return self.cdn_client

    def _setup_gateway_routes(self):
        """Set up gateway routes."""
        public = APIRouter(prefix="/api")
        protected = APIRouter(prefix="/api", dependencies=[Depends(self.authenticator.bearer)])

        @public.get("/_ping", response_model=Health, tags=["health"])
        async def ping():
            """Liveness probe."""
            return {"ok": True}

        @public.post(
            "/aliyun/handleOssEvents",
            response_model=ApiResponse,
            response_model_exclude_none=True,
            tags=["aliyun"],
        )
        async def handle_oss_events(
            request: Request,
            claims: Claims = Depends(self.authenticator.eventbridge),
        ):
            """Refresh the CDN copy of an object reported by an OSS event."""
            event = await parse_body(request, OssEventPayload)
            if self.cdn_refresh is None:
                raise ValidationError("Aliyun is not configured")
            bucket = event.data.oss.bucket.name
            object_key = event.data.oss.object_.key
            self.logger.info(
                "OSS event received",
                event_id=event.id,
                event_type=event.type,
                bucket=bucket,
                object_key=object_key,
                subject=claims.subject,
            )
            result = await self.cdn_refresh.refresh_object(bucket, object_key)
            return {
                "code": 0,
                "data": {
                    "refresh_task_id": result.refresh_task_id,
                    "request_id": result.request_id,
                    "object_path": result.object_path,
                },
            }

        @protected.post(
            "/aliyun/cdn/refreshObjectCaches",
            response_model=ApiResponse,
            response_model_exclude_none=True,
            tags=["aliyun"],
        )
        async def refresh_object_caches(request: Request):
            """Submit a CDN cache refresh for a URL."""
            payload = await parse_body(request, RefreshObjectCachesPayload)
            result = await self._require_cdn().refresh_object_caches(
                payload.object_path,
                object_type=payload.object_type,
                force=payload.force,
                area=payload.area,
            )
            return {"code": 0, "data": result.model_dump(by_alias=True)}

        @protected.post(
            "/aliyun/cdn/describeRefreshTasks",
            response_model=ApiResponse,
            response_model_exclude_none=True,
            tags=["aliyun"],
        )
        async def describe_refresh_tasks(request: Request):
            """Query CDN refresh task status."""
            request_filter = await parse_body(request, DescribeRefreshTasksFilter)
            result = await self._require_cdn().describe_refresh_tasks(request_filter)
            return {"code": 0, "data": result.model_dump(by_alias=True)}

        @protected.post(
            "/bilibili/createDynamic",
            response_model=ApiResponse,
            response_model_exclude_none=True,
            tags=["bilibili"],
        )
        async def create_dynamic(request: Request):
            """Post a dynamic with optional images.

            Multipart fields: ``msg`` (required JSON, sent as
            ``dyn_req.content.contents``) and any number of file fields; any
            field carrying a filename is treated as an image.
            """
            if self.dynamic_publisher is None:
                raise ValidationError("Bilibili is not configured")

            msg: Optional[str] = None
            images: List[ImageFile] = []
            async with request.form() as form:
                for name, value in form.multi_items():
                    if isinstance(value, UploadFile):
                        if value.filename:
                            images.append(ImageFile(
                                data=await value.read(),
                                file_name=value.filename,
                                content_type=value.content_type or "application/octet-stream",
                            ))
                    elif name == "msg":
                        msg = value

            data: Any = await self.dynamic_publisher.publish(msg, images)
            return {"code": 0, "data": data}

        self.app.include_router(public)
        self.app.include_router(protected)


def create_app(settings: Optional[GatewaySettings] = None,
               http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Create FastAPI application."""
    service = GatewayService(settings or load_settings(), http_client=http_client)
    return service.app

"""
Unit tests for the Aliyun CDN client.
"""

import httpx
import pytest

from service_gateway.app.aliyun.cdn import (
    API_VERSION,
    CdnClient,
    DescribeRefreshTasksFilter,
    DescribeRefreshTasksResponse,
)
from service_gateway.app.aliyun.signature import (
    EMPTY_BODY_SHA256,
    AliyunSigner,
    build_canonical_request,
    signature,
    string_to_sign,
)
from shared.errors import ErrorKind, NetworkError, RemoteApiError
from shared.metrics import MetricsCollector
from shared.test_helpers import RecordingTransport, cdn_describe_response, cdn_refresh_response

FIXED_DATE = "2024-05-10T08:15:30Z"
FIXED_NONCE = "0b5f7d6e-7f36-4bd1-9a3e-0a4c2f3d9e11"


def _signer():
    return AliyunSigner(
        "test-access-key-id",
        "test-access-key-secret",
        clock=lambda: FIXED_DATE,
        nonce_factory=lambda: FIXED_NONCE,
    )


def _client(handler, metrics=None):
    transport = RecordingTransport(handler)
    client = CdnClient(_signer(), httpx.AsyncClient(transport=transport), metrics=metrics)
    return client, transport


class TestRefreshObjectCaches:
    """Test cases for RefreshObjectCaches."""

    @pytest.mark.asyncio
    async def test_refresh_success(self):
        """Test a successful refresh request and its wire format."""
        client, transport = _client(lambda request: httpx.Response(200, json=cdn_refresh_response()))

        result = await client.refresh_object_caches("https://cdn.example.com/index.html")

        assert result.refresh_task_id == "704222904"
        assert result.request_id == "D61E4801-EAFF-4A63-AAE1-FBF6CE1CFD1C"

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.host == "cdn.aliyuncs.com"
        assert request.url.path == "/"
        assert request.url.params["ObjectPath"] == "https://cdn.example.com/index.html"
        assert request.url.params["ObjectType"] == "File"
        assert request.url.params["Force"] == "false"
        assert "Area" not in request.url.params
        assert request.content == b""

        assert request.headers["x-acs-action"] == "RefreshObjectCaches"
        assert request.headers["x-acs-version"] == API_VERSION
        assert request.headers["x-acs-content-sha256"] == EMPTY_BODY_SHA256
        assert request.headers["x-acs-date"] == FIXED_DATE
        assert request.headers["x-acs-signature-nonce"] == FIXED_NONCE
        assert request.headers["host"] == "cdn.aliyuncs.com"

    @pytest.mark.asyncio
    async def test_refresh_signature_verifies(self):
        """Recompute the signature from what was actually sent."""
        client, transport = _client(lambda request: httpx.Response(200, json=cdn_refresh_response()))

        await client.refresh_object_caches("https://cdn.example.com/file with spaces.pdf")

        request = transport.requests[0]
        assert request.url.query.decode() == (
            "Force=false"
            "&ObjectPath=https%3A%2F%2Fcdn.example.com%2Ffile%20with%20spaces.pdf"
            "&ObjectType=File"
        )
        signed_names = [
            "host", "x-acs-action", "x-acs-content-sha256",
            "x-acs-date", "x-acs-signature-nonce", "x-acs-version",
        ]
        canonical = build_canonical_request(
            "POST", "/", dict(request.url.params), dict(request.headers), signed_names, request.content
        )
        expected = signature(string_to_sign(canonical), "test-access-key-secret")
        assert request.headers["authorization"] == (
            "ACS3-HMAC-SHA256 Credential=test-access-key-id,"
            f"SignedHeaders={';'.join(signed_names)},Signature={expected}"
        )

    @pytest.mark.asyncio
    async def test_refresh_options(self):
        """Test directory refresh with force and area."""
        client, transport = _client(lambda request: httpx.Response(200, json=cdn_refresh_response()))

        await client.refresh_object_caches(
            "https://cdn.example.com/images/", object_type="Directory", force=True, area="overseas"
        )

        params = transport.requests[0].url.params
        assert params["ObjectType"] == "Directory"
        assert params["Force"] == "true"
        assert params["Area"] == "overseas"

    @pytest.mark.asyncio
    async def test_numeric_task_id_is_coerced(self):
        client, _ = _client(
            lambda request: httpx.Response(200, json={"RequestId": "r-1", "RefreshTaskId": 704222904})
        )

        result = await client.refresh_object_caches("https://cdn.example.com/a")

        assert result.refresh_task_id == "704222904"

    @pytest.mark.asyncio
    async def test_http_error_maps_to_remote_api_error(self):
        """Non-2xx responses surface status and body."""
        client, _ = _client(lambda request: httpx.Response(
            403, json={"Code": "Forbidden.RAM", "Message": "User not authorized"}
        ))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.refresh_object_caches("https://cdn.example.com/a")

        assert exc_info.value.kind == ErrorKind.REMOTE_API
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["status_code"] == 403
        assert "Forbidden.RAM" in exc_info.value.details["body"]
        assert "RefreshObjectCaches" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unparseable_body_maps_to_remote_api_error(self):
        client, _ = _client(lambda request: httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.refresh_object_caches("https://cdn.example.com/a")

        assert exc_info.value.details["body"] == "<html>gateway</html>"

    @pytest.mark.asyncio
    async def test_missing_fields_map_to_remote_api_error(self):
        client, _ = _client(lambda request: httpx.Response(200, json={"RequestId": "r-1"}))

        with pytest.raises(RemoteApiError):
            await client.refresh_object_caches("https://cdn.example.com/a")

    @pytest.mark.asyncio
    async def test_connect_error_maps_to_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, transport = _client(handler)

        with pytest.raises(NetworkError) as exc_info:
            await client.refresh_object_caches("https://cdn.example.com/a")

        assert exc_info.value.kind == ErrorKind.NETWORK
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        # No retries.
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_timeout_maps_to_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = _client(handler)

        with pytest.raises(NetworkError):
            await client.refresh_object_caches("https://cdn.example.com/a")

    @pytest.mark.asyncio
    async def test_upstream_metrics_recorded(self):
        metrics = MetricsCollector("test")
        client, _ = _client(lambda request: httpx.Response(200, json=cdn_refresh_response()), metrics=metrics)

        await client.refresh_object_caches("https://cdn.example.com/a")

        value = metrics.registry.get_sample_value(
            "upstream_requests_total",
            {"upstream": "aliyun_cdn", "action": "RefreshObjectCaches", "outcome": "success"},
        )
        assert value == 1.0


class TestDescribeRefreshTasks:
    """Test cases for DescribeRefreshTasks."""

    @pytest.mark.asyncio
    async def test_describe_success(self):
        client, transport = _client(lambda request: httpx.Response(200, json=cdn_describe_response()))

        result = await client.describe_refresh_tasks(DescribeRefreshTasksFilter(task_id="704222904"))

        assert result.total_count == 1
        assert result.page_number == 1
        assert result.page_size == 20
        task = result.tasks.cdn_task[0]
        assert task.task_id == "704222904"
        assert task.status == "Complete"
        assert task.process == "100%"

        request = transport.requests[0]
        assert request.headers["x-acs-action"] == "DescribeRefreshTasks"
        assert dict(request.url.params) == {"TaskId": "704222904"}

    @pytest.mark.asyncio
    async def test_unset_filter_fields_are_omitted(self):
        client, transport = _client(lambda request: httpx.Response(200, json=cdn_describe_response()))

        await client.describe_refresh_tasks()

        request = transport.requests[0]
        assert request.url.query == b""
        assert str(request.url) == "https://cdn.aliyuncs.com/"

    @pytest.mark.asyncio
    async def test_all_filter_fields_use_pascal_case(self):
        client, transport = _client(lambda request: httpx.Response(200, json=cdn_describe_response()))

        await client.describe_refresh_tasks(DescribeRefreshTasksFilter(
            task_id="1",
            object_path="https://cdn.example.com/a",
            page_number=2,
            object_type="file",
            domain_name="cdn.example.com",
            status="Complete",
            page_size=50,
            start_time="2024-05-01T00:00:00Z",
            end_time="2024-05-02T00:00:00Z",
            resource_group_id="rg-1",
        ))

        assert dict(transport.requests[0].url.params) == {
            "TaskId": "1",
            "ObjectPath": "https://cdn.example.com/a",
            "PageNumber": "2",
            "ObjectType": "file",
            "DomainName": "cdn.example.com",
            "Status": "Complete",
            "PageSize": "50",
            "StartTime": "2024-05-01T00:00:00Z",
            "EndTime": "2024-05-02T00:00:00Z",
            "ResourceGroupId": "rg-1",
        }

    @pytest.mark.asyncio
    async def test_empty_task_list(self):
        body = {"RequestId": "r-1", "PageNumber": 1, "PageSize": 20, "TotalCount": 0, "Tasks": {"CDNTask": []}}
        client, _ = _client(lambda request: httpx.Response(200, json=body))

        result = await client.describe_refresh_tasks()

        assert result.tasks.cdn_task == []

    def test_filter_accepts_wire_names(self):
        request_filter = DescribeRefreshTasksFilter.model_validate({"TaskId": "1", "PageSize": 10})
        assert request_filter.to_query_params() == {"TaskId": "1", "PageSize": "10"}

    def test_response_dumps_with_wire_names(self):
        result = DescribeRefreshTasksResponse.model_validate(cdn_describe_response())
        dumped = result.model_dump(by_alias=True)
        assert dumped["RequestId"] == "174F6032-AA26-470D-B90E-36F0EB205BEE"
        assert dumped["Tasks"]["CDNTask"][0]["TaskId"] == "704222904"

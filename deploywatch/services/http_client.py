import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from ..core.errors import ServiceError
from ..core.models import (
    CardSummary,
    RawFieldMappings,
    SideChannelInspection,
    SimpleStatus,
    StatusSnapshot,
    TargetOption,
)
from .base import DeploymentServices


class HttpDeploymentServices(DeploymentServices):
    """
    DeploymentServices bound to a REST backend.

    Endpoints (relative to ``base_url``):
        POST   /deployments                       -> {"jobId": ...}
        GET    /deployments/{job_id}/detailed-status
        GET    /deployments/{job_id}/status       -> {"state", "message", "done"}
        POST   /side-channels                     -> {"channelId": ...}
        GET    /side-channels/{channel_id}        -> {"closed", "result"}
        DELETE /side-channels/{channel_id}
        GET    /targets
        GET    /targets/stats
        GET    /targets/{key}/field-mappings
        GET    /targets/{key}/source              -> {"source": ...}
    """

    def __init__(self, base_url: str, timeout: float = 10.0, api_token: Optional[str] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.api_token = api_token
        self.logger = logging.getLogger(f"{__name__}.HttpDeploymentServices")

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.api_token:
            headers['Authorization'] = f"Bearer {self.api_token}"
        return headers

    async def _request(self, method: str, path: str, operation: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """Issue one request and return the decoded JSON body (None for empty bodies)"""
        url = f"{self.base_url}{path}"
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout, headers=self._headers()) as session:
                async with session.request(method, url, json=json) as response:
                    if response.status >= 400:
                        message = await self._error_message(response)
                        raise ServiceError(message, status=response.status, operation=operation)
                    if response.status == 204:
                        return None
                    body = await response.json(content_type=None)
                    self.logger.debug(f"{operation}: {method} {url} -> {response.status}")
                    return body
        except ServiceError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ServiceError(f"{operation} failed: {e}", operation=operation) from e

    @staticmethod
    async def _error_message(response: aiohttp.ClientResponse) -> str:
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError):
            body = None
        if isinstance(body, dict) and body.get('message'):
            return str(body['message'])
        return f"HTTP {response.status}: {response.reason}"

    @staticmethod
    def _path_key(value: Any) -> str:
        return quote(str(value), safe='')

    async def submit_deployment(self, target_key: str) -> str:
        body = await self._request('POST', '/deployments', 'submit_deployment', json={'targetKey': target_key})
        job_id = body.get('jobId') if isinstance(body, dict) else body
        if not job_id:
            raise ServiceError("Submission returned no job id", operation='submit_deployment')
        return str(job_id)

    async def open_side_channel(self, target_key: str) -> str:
        body = await self._request('POST', '/side-channels', 'open_side_channel', json={'targetKey': target_key})
        channel_id = body.get('channelId') if isinstance(body, dict) else body
        if not channel_id:
            raise ServiceError("Side channel returned no handle", operation='open_side_channel')
        return str(channel_id)

    async def inspect_side_channel(self, handle: Any) -> SideChannelInspection:
        body = await self._request('GET', f"/side-channels/{self._path_key(handle)}", 'inspect_side_channel')
        return SideChannelInspection.from_dict(body or {})

    async def close_side_channel(self, handle: Any) -> None:
        await self._request('DELETE', f"/side-channels/{self._path_key(handle)}", 'close_side_channel')

    async def query_detailed_status(self, job_id: str) -> StatusSnapshot:
        body = await self._request(
            'GET', f"/deployments/{self._path_key(job_id)}/detailed-status", 'query_detailed_status'
        )
        return StatusSnapshot.from_dict(body or {})

    async def query_status(self, job_id: str) -> SimpleStatus:
        body = await self._request('GET', f"/deployments/{self._path_key(job_id)}/status", 'query_status')
        return SimpleStatus.from_dict(body or {})

    async def list_targets(self) -> List[TargetOption]:
        body = await self._request('GET', '/targets', 'list_targets')
        return [TargetOption.from_value(item) for item in body or []]

    async def list_targets_with_stats(self) -> List[CardSummary]:
        body = await self._request('GET', '/targets/stats', 'list_targets_with_stats')
        return [CardSummary.from_dict(item) for item in body or []]

    async def get_field_mappings(self, target_key: str) -> RawFieldMappings:
        body = await self._request(
            'GET', f"/targets/{self._path_key(target_key)}/field-mappings", 'get_field_mappings'
        )
        return RawFieldMappings.from_dict(body or {})

    async def get_deployed_source_text(self, target_key: str) -> str:
        body = await self._request('GET', f"/targets/{self._path_key(target_key)}/source", 'get_deployed_source_text')
        if isinstance(body, dict):
            return str(body.get('source') or '')
        return str(body or '')

"""
视觉服务客户端

请求体（步骤）：
    image, stepName, description, assertions, actions,
    temperature, context, previous, last
请求体（总结）：
    action="summary", script, context
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ...core.logger import logger


class VisionApiError(RuntimeError):
    """视觉服务请求失败或响应无法解析"""


class VisionResponse(BaseModel):
    status: Optional[str] = None
    failed_assertions: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("failed_assertions", "failedAssertions"),
    )
    passed_assertions: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("passed_assertions", "passedAssertions"),
    )
    image_width: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("image_width", "imageWidth"),
    )
    image_height: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("image_height", "imageHeight"),
    )
    actions: Optional[List[str]] = None
    context: Optional[str] = None
    request_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("request_id", "requestId"),
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SummaryResponse(BaseModel):
    status: Optional[str] = None
    summary: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


@dataclass
class StepRequest:
    image: str
    step_name: str
    description: str
    assertions: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    temperature: float = 0.1
    context: str = ""
    previous_request_id: Optional[str] = None
    is_last_step: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "image": self.image,
            "stepName": self.step_name,
            "description": self.description,
            "assertions": list(self.assertions),
            "actions": list(self.actions),
            "temperature": self.temperature,
            "context": self.context,
            "previous": self.previous_request_id,
            "last": self.is_last_step,
        }


class VisionClient:
    def __init__(
        self,
        url: str,
        api_key: str = "",
        client_key: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._client_key = client_key
        self._timeout = timeout
        self._transport = transport
        self._log = logger.bind(module="VisionClient")

    def configured(self) -> bool:
        return bool(self._url)

    async def _request(self, payload: Dict[str, Any]) -> str:
        if not self.configured():
            raise VisionApiError("视觉服务地址未配置 (config/credentials.json: lambda_url)")
        headers = {
            "x-api-key": self._api_key,
            "x-client-api-key": self._client_key,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise VisionApiError(f"视觉服务请求失败: {e}") from e

        cache_status = response.headers.get("X-Cache-Status")
        self._log.debug(f"{cache_status} 原始响应: {response.text}")
        if response.status_code >= 400:
            raise VisionApiError(f"{response.status_code}: {response.text}")
        return response.text

    async def process_step(self, request: StepRequest) -> VisionResponse:
        body = await self._request(request.to_payload())
        try:
            return VisionResponse.model_validate_json(body)
        except ValidationError as e:
            raise VisionApiError(f"视觉服务响应格式错误: {e}") from e

    async def request_summary(self, script_text: str, context_text: str) -> SummaryResponse:
        body = await self._request(
            {
                "action": "summary",
                "script": script_text,
                "context": context_text,
            }
        )
        try:
            return SummaryResponse.model_validate_json(body)
        except ValidationError as e:
            raise VisionApiError(f"总结响应格式错误: {e}") from e

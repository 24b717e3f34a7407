# main_server/app/adapters/generation/http_job_api.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from mood_back.main_server.app.adapters.generation.dto import (
    AnalysisInputDTO,
    AnalysisJobDTO,
    ErrorBodyDTO,
    ImageInputDTO,
    ImageJobDTO,
    JobResourceDTO,
    MusicInputDTO,
    MusicJobDTO,
    SubmitResponseDTO,
    request_body,
)
from mood_back.main_server.app.domain.errors_domain import (
    JobNotFoundError,
    JobPayloadError,
    TransportError,
)
from mood_back.main_server.app.domain.jobs_domain import Job, JobKind, SubmitReceipt

log = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class JobEndpoints:
    submit_path: str
    status_path: str  # formatted with job_id
    request_dto: Type[BaseModel]
    job_dto: Type[JobResourceDTO]


ENDPOINTS = {
    JobKind.ANALYSIS: JobEndpoints("/api/analyze", "/api/analyze/{job_id}", AnalysisInputDTO, AnalysisJobDTO),
    JobKind.IMAGE: JobEndpoints("/api/image/generate", "/api/job/{job_id}", ImageInputDTO, ImageJobDTO),
    JobKind.MUSIC: JobEndpoints("/api/music/generate", "/api/music/{job_id}", MusicInputDTO, MusicJobDTO),
}


class HttpJobApi(Generic[RequestT, ResultT]):
    """
        JobApi over the generation server's HTTP contract.
        One instance per job kind; several instances may share one AsyncClient.
    """

    def __init__(
        self,
        kind: JobKind,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.kind = kind
        self._endpoints = ENDPOINTS[kind]
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def submit(self, request: RequestT) -> SubmitReceipt:
        body = request_body(self._endpoints.request_dto.from_domain(request))
        data = await self._request("POST", self._endpoints.submit_path, json=body)
        try:
            return SubmitResponseDTO.model_validate(data).to_domain()
        except ValidationError as e:
            raise JobPayloadError(f"Invalid submit response from {self.kind.value}: {e}") from e

    async def get_status(self, job_id: str) -> Job[RequestT, ResultT]:
        path = self._endpoints.status_path.format(job_id=job_id)
        data = await self._request("GET", path, job_id=job_id)
        try:
            return self._endpoints.job_dto.model_validate(data).to_domain()
        except ValidationError as e:
            raise JobPayloadError(f"Invalid {self.kind.value} job payload for {job_id}: {e}") from e

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        job_id: Optional[str] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            r = await self._client.request(method, url, json=json)
        except httpx.TimeoutException as e:
            raise TransportError(f"{self.kind.value} request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{self.kind.value} request failed: {method} {path}: {e}") from e

        if r.status_code == 404 and job_id is not None:
            raise JobNotFoundError(job_id)
        if r.is_error:
            message = _error_message(r) or f"HTTP {r.status_code}"
            log.warning("%s %s -> %d: %s", method, path, r.status_code, message)
            raise TransportError(message, status_code=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise JobPayloadError(f"Non-JSON body from {method} {path}") from e


def _error_message(r: httpx.Response) -> Optional[str]:
    try:
        data = r.json()
    except ValueError:
        return r.text.strip() or None
    if not isinstance(data, dict):
        return None
    try:
        return ErrorBodyDTO.model_validate(data).best_message()
    except ValidationError:
        return None


def build_job_apis(base_url: str, client: httpx.AsyncClient) -> dict[JobKind, HttpJobApi]:
    return {kind: HttpJobApi(kind, base_url, client=client) for kind in JobKind}

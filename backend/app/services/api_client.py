"""HTTP client for the crime browser REST API, for out-of-process map consumers."""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from app.config import get_settings
from app.errors import (
    CrimeBrowserError,
    DuplicateKey,
    NotFound,
    StoreError,
    ValidationError,
)
from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut
from app.schemas.incident import IncidentIn, IncidentRecord, MutationResult
from app.services.filters import QueryDescriptor

logger = logging.getLogger(__name__)
settings = get_settings()

ERRORS_BY_STATUS: dict[int, type[CrimeBrowserError]] = {
    400: ValidationError,
    404: NotFound,
    409: DuplicateKey,
}


def _join(values: Iterable[int]) -> str:
    return ",".join(str(value) for value in sorted(values))


def descriptor_params(descriptor: QueryDescriptor) -> dict[str, Any]:
    """Encode a descriptor as /incidents query parameters."""
    params: dict[str, Any] = {"limit": descriptor.limit}
    if descriptor.start_date:
        params["start_date"] = descriptor.start_date.isoformat()
    if descriptor.end_date:
        params["end_date"] = descriptor.end_date.isoformat()
    if descriptor.codes:
        params["code"] = _join(descriptor.codes)
    if descriptor.grids:
        params["grid"] = _join(descriptor.grids)
    if descriptor.neighborhoods:
        params["neighborhood"] = _join(descriptor.neighborhoods)
    return params


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.reason_phrase


class CrimeAPIClient:
    """
    Client for the crime browser REST API.

    Features:
    - Typed failures mapped from HTTP status (400/404/409/5xx)
    - Exponential backoff retry for reads on transport errors and 429
    - Server errors are reported as StoreError and never retried
    """

    def __init__(
        self,
        base_url: str = settings.api_base_url,
        max_retries: int = settings.api_max_retries,
        timeout: float = settings.api_timeout,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.headers: dict[str, str] = {"Accept": "application/json"}

    async def _request_with_retry(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        retry: bool = True,
    ) -> Any:
        """Make HTTP request; reads retry with exponential backoff."""
        url = f"{self.base_url}{path}"
        attempts = self.max_retries if retry else 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method, url, headers=self.headers, params=params, json=json
                    )
                    response.raise_for_status()
                    return response.json()

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code
                if status == 429 and attempt + 1 < attempts:
                    wait_time = 2**attempt
                    logger.warning(f"Rate limited, waiting {wait_time}s before retry")
                    await asyncio.sleep(wait_time)
                    continue
                error_class = ERRORS_BY_STATUS.get(status, StoreError)
                raise error_class(_error_detail(e.response)) from e

            except httpx.RequestError as e:
                last_error = e
                if attempt + 1 < attempts:
                    wait_time = 2**attempt
                    logger.warning(f"Request error: {e}, retry in {wait_time}s")
                    await asyncio.sleep(wait_time)

        raise StoreError(f"Failed after {attempts} attempts: {last_error}")

    async def list_codes(self, codes: Iterable[int] | None = None) -> list[IncidentCodeOut]:
        """Fetch incident codes, ascending by code."""
        params = {"code": _join(codes)} if codes else None
        rows = await self._request_with_retry("GET", "/codes", params=params)
        return [IncidentCodeOut.model_validate(row) for row in rows]

    async def list_neighborhoods(self, ids: Iterable[int] | None = None) -> list[NeighborhoodOut]:
        """Fetch neighborhoods, ascending by id."""
        params = {"id": _join(ids)} if ids else None
        rows = await self._request_with_retry("GET", "/neighborhoods", params=params)
        return [NeighborhoodOut.model_validate(row) for row in rows]

    async def load_catalog(self) -> tuple[list[IncidentCodeOut], list[NeighborhoodOut]]:
        """Fetch both reference tables."""
        return await self.list_codes(), await self.list_neighborhoods()

    async def fetch_incidents(self, descriptor: QueryDescriptor) -> list[IncidentRecord]:
        """
        Fetch incidents for a descriptor.

        A descriptor that matches nothing cannot be expressed as query
        parameters, so it is answered locally without a request.
        """
        if descriptor.matches_nothing:
            return []

        logger.info(f"Fetching incidents: limit={descriptor.limit}")
        rows = await self._request_with_retry(
            "GET", "/incidents", params=descriptor_params(descriptor)
        )
        logger.info(f"Fetched {len(rows)} incidents")
        return [IncidentRecord.model_validate(row) for row in rows]

    async def get_incident(self, case_number: str) -> IncidentRecord:
        row = await self._request_with_retry("GET", f"/incidents/{case_number}")
        return IncidentRecord.model_validate(row)

    async def create_incident(self, payload: IncidentIn | dict) -> MutationResult:
        """Submit a new incident. Not retried."""
        if isinstance(payload, IncidentIn):
            payload = payload.model_dump()
        body = await self._request_with_retry("PUT", "/new-incident", json=payload, retry=False)
        return MutationResult.model_validate(body)

    async def delete_incident(self, case_number: str | None) -> MutationResult:
        """Remove an incident. Not retried."""
        body = await self._request_with_retry(
            "DELETE", "/remove-incident", json={"case_number": case_number}, retry=False
        )
        return MutationResult.model_validate(body)

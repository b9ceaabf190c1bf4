"""Async HTTP client for the clinic records API."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from clinic.config import settings
from clinic.models.schemas import (
    ConsultationCreate,
    ConsultationResponse,
    PatientCreate,
    PatientResponse,
    PatientSummary,
    SeedResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PATIENT = TypeAdapter(PatientResponse)
_PATIENT_LIST = TypeAdapter(list[PatientSummary])
_CONSULTATION = TypeAdapter(ConsultationResponse)
_CONSULTATION_LIST = TypeAdapter(list[ConsultationResponse])
_SEED = TypeAdapter(SeedResponse)


class ApiError(Exception):
    """Raised for failed requests: non-2xx, unreadable 2xx body, or transport failure (0)."""

    def __init__(self, status_code: int, message: str, details: str | None = None) -> None:
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)


class ClinicClient:
    """Thin typed wrapper over the HTTP routes. Every request has a timeout."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.client_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> ClinicClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self, method: str, path: str, adapter: TypeAdapter[T], json: Any = None
    ) -> T:
        try:
            resp = await self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(0, f"Request failed: {e}") from e

        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            logger.warning("%s %s -> %d", method, path, resp.status_code)
            raise ApiError(
                resp.status_code,
                body.get("error") or "Unknown error",
                body.get("details"),
            )

        # A 2xx body that is not the expected JSON (e.g. a proxy page) is a failure too.
        try:
            return adapter.validate_python(resp.json())
        except (ValueError, ValidationError) as e:
            logger.warning("%s %s -> %d with unreadable body", method, path, resp.status_code)
            raise ApiError(resp.status_code, "Invalid response") from e

    # --- Patients ---

    async def list_patients(self) -> list[PatientSummary]:
        return await self._request("GET", "/patients", _PATIENT_LIST)

    async def get_patient(self, patient_id: str) -> PatientResponse:
        return await self._request("GET", f"/patients/{patient_id}", _PATIENT)

    async def create_patient(self, **fields: Any) -> PatientResponse:
        body = PatientCreate(**fields).model_dump(mode="json", by_alias=True)
        return await self._request("POST", "/patients", _PATIENT, json=body)

    async def update_patient(self, patient_id: str, name: str, age: int) -> PatientResponse:
        return await self._request(
            "PUT", f"/patients/{patient_id}", _PATIENT, json={"name": name, "age": age}
        )

    # --- Consultations ---

    async def list_consultations(self, patient_id: str) -> list[ConsultationResponse]:
        return await self._request(
            "GET", f"/patients/{patient_id}/consultations", _CONSULTATION_LIST
        )

    async def create_consultation(self, patient_id: str, **fields: Any) -> ConsultationResponse:
        body = ConsultationCreate(**fields).model_dump(mode="json", by_alias=True)
        return await self._request(
            "POST", f"/patients/{patient_id}/consultations", _CONSULTATION, json=body
        )

    async def seed(self) -> SeedResponse:
        return await self._request("POST", "/seed", _SEED)

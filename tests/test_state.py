"""Tests for the presentation state machines."""

from __future__ import annotations

import asyncio
import datetime
from unittest.mock import AsyncMock

import httpx
import pytest

from clinic.models.schemas import ConsultationResponse, PatientResponse, PatientSummary
from clinic.ui.client import ApiError, ClinicClient
from clinic.ui.state import (
    InvalidTransitionError,
    PatientDetailPanel,
    PatientListPage,
    PatientProfilePage,
)

D = datetime.date
NOW = datetime.datetime(2024, 1, 1, 9, 0)


def _summary(patient_id: str, name: str, age: int, last_visit: D | None = None) -> PatientSummary:
    return PatientSummary(
        id=patient_id,
        name=name,
        age=age,
        email=f"{patient_id}@email.com",
        phone="",
        created_at=NOW,
        updated_at=NOW,
        last_visit=last_visit,
    )


def _response(patient_id: str, name: str, age: int) -> PatientResponse:
    return PatientResponse(
        id=patient_id,
        name=name,
        age=age,
        email=f"{patient_id}@email.com",
        phone="",
        created_at=NOW,
        updated_at=datetime.datetime(2024, 5, 1, 9, 0),
    )


def _consultation(consultation_id: str, day: D, patient_id: str = "ana") -> ConsultationResponse:
    return ConsultationResponse(
        id=consultation_id,
        patient_id=patient_id,
        date=day,
        doctor="Dr. Ana Silva",
        diagnosis="Check-up",
        notes="",
        created_at=NOW,
    )


ANA = _summary("ana", "Ana Costa", 55, last_visit=D(2024, 3, 18))
MARIA = _summary("maria", "Maria Santos", 32)


@pytest.fixture
def fake_client() -> AsyncMock:
    client = AsyncMock(spec=ClinicClient)
    client.list_patients.return_value = [ANA, MARIA]
    client.list_consultations.return_value = [
        _consultation("c1", D(2024, 3, 18)),
        _consultation("c2", D(2024, 1, 5)),
    ]
    return client


# --- List page ---


class TestPatientListPage:
    async def test_load_success(self, fake_client: AsyncMock) -> None:
        page = PatientListPage(fake_client)
        assert page.state == "idle"
        await page.load()
        assert page.state == "ready"
        assert [p.name for p in page.patients] == ["Ana Costa", "Maria Santos"]

    async def test_load_failure_falls_back_to_empty_list(self, fake_client: AsyncMock) -> None:
        fake_client.list_patients.side_effect = ApiError(500, "Failed to fetch patients")
        page = PatientListPage(fake_client)
        await page.load()
        assert page.state == "errored"
        assert page.patients == []
        assert page.error == "Failed to fetch patients"
        assert page.empty_message == "No patients registered"

    async def test_search_is_case_insensitive(self, fake_client: AsyncMock) -> None:
        page = PatientListPage(fake_client)
        await page.load()
        page.search_query = "SANT"
        assert [p.id for p in page.filtered_patients] == ["maria"]
        page.search_query = "zzz"
        assert page.filtered_patients == []
        assert page.empty_message == "No patients found"

    async def test_refresh_failure_keeps_entries(self, fake_client: AsyncMock) -> None:
        page = PatientListPage(fake_client)
        await page.load()
        fake_client.list_patients.side_effect = ApiError(0, "Request failed")
        await page.refresh()
        assert page.refreshing is False
        assert len(page.patients) == 2
        assert page.error == "Request failed"

    async def test_select_loads_history(self, fake_client: AsyncMock) -> None:
        page = PatientListPage(fake_client)
        await page.load()
        panel = await page.select("ana")
        assert page.detail is panel
        assert panel.consultations_state == "ready"
        assert [c.id for c in panel.consultations] == ["c1", "c2"]
        fake_client.list_consultations.assert_awaited_once_with("ana")

    async def test_history_failure_does_not_touch_list(self, fake_client: AsyncMock) -> None:
        fake_client.list_consultations.side_effect = ApiError(500, "Failed to fetch consultations")
        page = PatientListPage(fake_client)
        await page.load()
        panel = await page.select("maria")
        assert panel.consultations_state == "errored"
        assert panel.consultations == []
        assert page.state == "ready"
        assert len(page.patients) == 2

    async def test_select_unknown_patient(self, fake_client: AsyncMock) -> None:
        page = PatientListPage(fake_client)
        await page.load()
        with pytest.raises(LookupError):
            await page.select("nobody")


# --- Detail panel edit cycle ---


class TestPatientDetailPanel:
    def test_transitions_guarded(self, fake_client: AsyncMock) -> None:
        panel = PatientDetailPanel(fake_client, ANA)
        assert panel.edit_state == "viewing"
        with pytest.raises(InvalidTransitionError):
            panel.update_draft(name="x")
        with pytest.raises(InvalidTransitionError):
            panel.cancel_edit()
        panel.start_edit()
        with pytest.raises(InvalidTransitionError):
            panel.start_edit()

    async def test_save_success(self, fake_client: AsyncMock) -> None:
        fake_client.update_patient.return_value = _response("ana", "Ana Costa", 56)
        saved: list[PatientSummary] = []
        panel = PatientDetailPanel(fake_client, ANA, on_saved=saved.append)

        panel.start_edit()
        panel.update_draft(age=56)
        assert await panel.save() is True

        fake_client.update_patient.assert_awaited_once_with("ana", "Ana Costa", 56)
        assert panel.edit_state == "viewing"
        assert panel.patient.age == 56
        assert panel.patient.last_visit == D(2024, 3, 18)
        assert saved == [panel.patient]

    async def test_save_failure_keeps_drafts(self, fake_client: AsyncMock) -> None:
        fake_client.update_patient.side_effect = ApiError(400, "Invalid input: name")
        panel = PatientDetailPanel(fake_client, ANA)

        panel.start_edit()
        panel.update_draft(name="", age=60)
        assert await panel.save() is False

        assert panel.edit_state == "editing"
        assert panel.draft_name == ""
        assert panel.draft_age == 60
        assert panel.patient.name == "Ana Costa"
        assert panel.error == "Error saving changes: Invalid input: name"

        panel.dismiss_error()
        assert panel.error is None
        assert panel.draft_age == 60

    def test_cancel_restores_drafts(self, fake_client: AsyncMock) -> None:
        panel = PatientDetailPanel(fake_client, ANA)
        panel.start_edit()
        panel.update_draft(name="Someone Else", age=1)
        panel.cancel_edit()
        assert panel.edit_state == "viewing"
        assert (panel.draft_name, panel.draft_age) == ("Ana Costa", 55)

    async def test_profile_uses_loaded_history(self, fake_client: AsyncMock) -> None:
        panel = PatientDetailPanel(fake_client, ANA)
        await panel.load_consultations()
        profile = panel.profile(today=D(2024, 3, 18))
        assert profile.initials == "AC"
        assert [v.id for v in profile.future_visits] == ["c1"]
        assert [v.id for v in profile.past_visits] == ["c2"]


class TestSavingLock:
    async def test_selection_locked_while_saving(self, fake_client: AsyncMock) -> None:
        release = asyncio.Event()

        async def slow_update(patient_id: str, name: str, age: int) -> PatientResponse:
            await release.wait()
            return _response(patient_id, name, age)

        fake_client.update_patient.side_effect = slow_update
        page = PatientListPage(fake_client)
        await page.load()
        panel = await page.select("ana")
        panel.start_edit()
        panel.update_draft(age=56)

        task = asyncio.create_task(panel.save())
        await asyncio.sleep(0)
        assert panel.is_saving

        with pytest.raises(InvalidTransitionError):
            await page.select("maria")
        with pytest.raises(InvalidTransitionError):
            page.close_detail()
        with pytest.raises(InvalidTransitionError):
            await panel.save()

        release.set()
        assert await task is True
        assert page.detail is panel
        assert next(p for p in page.patients if p.id == "ana").age == 56

        page.close_detail()
        assert page.detail is None


# --- Profile page ---


class TestPatientProfilePage:
    async def test_load(self, fake_client: AsyncMock) -> None:
        fake_client.get_patient.return_value = _response("ana", "Ana Costa", 55)
        page = PatientProfilePage(fake_client, "ana")
        await page.load()
        assert page.state == "ready"
        assert page.found

        today = D(2024, 2, 1)
        assert page.tab_counts(today) == {"future": 1, "past": 1, "planned": 0}
        assert [c.id for c in page.visible_consultations(today)] == ["c2"]
        page.select_tab("future")
        assert [c.id for c in page.visible_consultations(today)] == ["c1"]
        page.select_tab("planned")
        assert page.visible_consultations(today) == []
        assert page.profile(today).name == "Ana Costa"

    async def test_not_found(self, fake_client: AsyncMock) -> None:
        fake_client.get_patient.side_effect = ApiError(404, "Patient not found")
        fake_client.list_consultations.return_value = []
        page = PatientProfilePage(fake_client, "ghost")
        await page.load()
        assert page.state == "errored"
        assert not page.found
        assert page.error == "Patient not found"
        assert page.profile(D(2024, 1, 1)) is None

    def test_unknown_tab(self, fake_client: AsyncMock) -> None:
        page = PatientProfilePage(fake_client, "ana")
        with pytest.raises(ValueError):
            page.select_tab("archive")


# --- Against the real app ---


async def test_edit_flow_end_to_end(clinic_client: ClinicClient) -> None:
    await clinic_client.seed()
    page = PatientListPage(clinic_client)
    await page.load()
    assert page.state == "ready"

    page.search_query = "ana costa"
    [ana] = page.filtered_patients
    assert ana.last_visit == D(2024, 3, 18)

    panel = await page.select(ana.id)
    assert [c.date for c in panel.consultations] == [D(2024, 3, 18), D(2024, 2, 12), D(2024, 1, 5)]

    panel.start_edit()
    panel.update_draft(name="")
    assert await panel.save() is False
    assert panel.error is not None
    assert panel.draft_name == ""

    panel.update_draft(name="Ana Costa", age=56)
    assert await panel.save() is True
    assert panel.patient.updated_at > panel.patient.created_at

    await page.refresh()
    refreshed = next(p for p in page.patients if p.id == ana.id)
    assert refreshed.age == 56
    assert refreshed.last_visit == D(2024, 3, 18)


async def test_profile_page_end_to_end(clinic_client: ClinicClient) -> None:
    created = await clinic_client.create_patient(name="Cher", age=70)
    await clinic_client.create_consultation(created.id, date=D(2024, 1, 5), doctor="Dr. Ana Silva")
    await clinic_client.create_consultation(created.id, date=D(2099, 1, 1), doctor="Dr. Ana Silva")

    page = PatientProfilePage(clinic_client, created.id)
    await page.load()
    profile = page.profile(D(2025, 1, 1))
    assert profile.initials == "C"
    assert [v.date for v in profile.future_visits] == ["01 Jan 2099"]
    assert [v.date for v in profile.past_visits] == ["05 Jan 2024"]


async def test_client_raises_api_error(clinic_client: ClinicClient) -> None:
    with pytest.raises(ApiError) as exc_info:
        await clinic_client.get_patient("0" * 32)
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Patient not found"


# --- Malformed success bodies ---


def _mock_client(handler) -> ClinicClient:
    return ClinicClient("http://test", transport=httpx.MockTransport(handler))


async def test_non_json_success_body_is_api_error() -> None:
    client = _mock_client(lambda request: httpx.Response(200, text="<html>proxy</html>"))
    with pytest.raises(ApiError) as exc_info:
        await client.list_patients()
    assert exc_info.value.status_code == 200
    assert exc_info.value.message == "Invalid response"
    await client.aclose()


async def test_wrong_shape_success_body_errors_the_list() -> None:
    client = _mock_client(lambda request: httpx.Response(200, json=[{"name": "No id"}]))
    page = PatientListPage(client)
    await page.load()
    assert page.state == "errored"
    assert page.patients == []
    assert page.error == "Invalid response"
    await client.aclose()


async def test_non_json_history_leaves_panel_usable() -> None:
    client = _mock_client(lambda request: httpx.Response(200, text="oops"))
    panel = PatientDetailPanel(client, ANA)
    await panel.load_consultations()
    assert panel.consultations_state == "errored"
    assert panel.consultations == []
    await client.aclose()


async def test_refresh_ignored_while_loading(fake_client: AsyncMock) -> None:
    release = asyncio.Event()

    async def slow_list() -> list[PatientSummary]:
        await release.wait()
        return [ANA, MARIA]

    fake_client.list_patients.side_effect = slow_list
    page = PatientListPage(fake_client)
    task = asyncio.create_task(page.load())
    await asyncio.sleep(0)
    assert page.state == "loading"

    await page.refresh()
    assert page.state == "loading"
    assert fake_client.list_patients.await_count == 1

    release.set()
    await task
    assert page.state == "ready"
    assert len(page.patients) == 2

"""Presentation state for the patient pages, independent of any renderer.

Page loading follows ``idle -> loading -> ready`` or ``idle -> loading -> errored``.
Inside a ready detail panel, editing follows ``viewing -> editing -> saving``,
returning to ``viewing`` on success or to ``editing`` on failure with the
user's drafts intact.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Callable
from typing import Literal, get_args

from clinic.models.schemas import ConsultationResponse, PatientResponse, PatientSummary
from clinic.services.display import PatientProfile, build_profile, partition_by_date
from clinic.ui.client import ApiError, ClinicClient

logger = logging.getLogger(__name__)

LoadState = Literal["idle", "loading", "ready", "errored"]
EditState = Literal["viewing", "editing", "saving"]
ProfileTab = Literal["past", "future", "planned"]


class InvalidTransitionError(Exception):
    """Raised when an action is not allowed in the current state."""

    def __init__(self, action: str, state: str) -> None:
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while {state}")


class PatientDetailPanel:
    """Selected patient: consultation history plus the name/age edit form."""

    def __init__(
        self,
        client: ClinicClient,
        patient: PatientSummary,
        on_saved: Callable[[PatientSummary], None] | None = None,
    ) -> None:
        self.client = client
        self.patient = patient
        self.on_saved = on_saved
        self.consultations: list[ConsultationResponse] = []
        self.consultations_state: LoadState = "idle"
        self.edit_state: EditState = "viewing"
        self.draft_name = patient.name
        self.draft_age = patient.age
        self.error: str | None = None

    @property
    def is_saving(self) -> bool:
        return self.edit_state == "saving"

    def _require(self, action: str, expected: EditState) -> None:
        if self.edit_state != expected:
            raise InvalidTransitionError(action, self.edit_state)

    async def load_consultations(self) -> None:
        """Fetch history. A failure shows an empty history and nothing else."""
        self.consultations_state = "loading"
        try:
            consultations = await self.client.list_consultations(self.patient.id)
        except ApiError as e:
            logger.warning("Consultations for %s unavailable: %s", self.patient.id, e.message)
            self.consultations = []
            self.consultations_state = "errored"
            return
        self.consultations = consultations
        self.consultations_state = "ready"

    def start_edit(self) -> None:
        self._require("start editing", "viewing")
        self.draft_name = self.patient.name
        self.draft_age = self.patient.age
        self.edit_state = "editing"

    def update_draft(self, *, name: str | None = None, age: int | None = None) -> None:
        self._require("change the draft", "editing")
        if name is not None:
            self.draft_name = name
        if age is not None:
            self.draft_age = age

    def cancel_edit(self) -> None:
        self._require("cancel editing", "editing")
        self.draft_name = self.patient.name
        self.draft_age = self.patient.age
        self.error = None
        self.edit_state = "viewing"

    async def save(self) -> bool:
        """Submit the drafts. Returns True when the server accepted them."""
        self._require("save", "editing")
        self.edit_state = "saving"
        self.error = None
        try:
            updated = await self.client.update_patient(
                self.patient.id, self.draft_name, self.draft_age
            )
        except ApiError as e:
            logger.warning("Saving patient %s failed: %s", self.patient.id, e.message)
            self.error = f"Error saving changes: {e.message}"
            self.edit_state = "editing"
            return False

        # The update response carries no lastVisit; keep the one we have.
        self.patient = PatientSummary(
            **updated.model_dump(), last_visit=self.patient.last_visit
        )
        self.draft_name = self.patient.name
        self.draft_age = self.patient.age
        self.edit_state = "viewing"
        if self.on_saved is not None:
            self.on_saved(self.patient)
        return True

    def dismiss_error(self) -> None:
        self.error = None

    def profile(self, today: datetime.date) -> PatientProfile:
        return build_profile(self.patient, self.consultations, today)


class PatientListPage:
    """Patient list with search, refresh and a single selected detail panel.

    Selection is locked while the open panel is saving.
    """

    def __init__(self, client: ClinicClient) -> None:
        self.client = client
        self.state: LoadState = "idle"
        self.patients: list[PatientSummary] = []
        self.search_query = ""
        self.refreshing = False
        self.error: str | None = None
        self.detail: PatientDetailPanel | None = None

    async def load(self) -> None:
        self.state = "loading"
        try:
            patients = await self.client.list_patients()
        except ApiError as e:
            logger.warning("Patient list unavailable: %s", e.message)
            self.patients = []
            self.error = e.message
            self.state = "errored"
            return
        self.patients = patients
        self.error = None
        self.state = "ready"

    async def refresh(self) -> None:
        """Re-fetch the list; on failure the current entries stay on screen.

        Ignored while the initial load or another refresh is in flight.
        """
        if self.refreshing or self.state == "loading":
            return
        self.refreshing = True
        try:
            patients = await self.client.list_patients()
        except ApiError as e:
            logger.warning("Refreshing patient list failed: %s", e.message)
            self.error = e.message
            return
        finally:
            self.refreshing = False
        self.patients = patients
        self.error = None
        self.state = "ready"

    @property
    def filtered_patients(self) -> list[PatientSummary]:
        query = self.search_query.lower()
        return [p for p in self.patients if query in p.name.lower()]

    @property
    def empty_message(self) -> str | None:
        if self.filtered_patients:
            return None
        return "No patients found" if self.search_query else "No patients registered"

    def _ensure_unlocked(self, action: str) -> None:
        if self.detail is not None and self.detail.is_saving:
            raise InvalidTransitionError(action, "saving")

    async def select(self, patient_id: str) -> PatientDetailPanel:
        """Open the detail panel for a listed patient and fetch its history."""
        self._ensure_unlocked("change selection")
        patient = next((p for p in self.patients if p.id == patient_id), None)
        if patient is None:
            raise LookupError(f"Patient {patient_id} is not in the list")
        panel = PatientDetailPanel(self.client, patient, on_saved=self._replace_patient)
        self.detail = panel
        await panel.load_consultations()
        return panel

    def close_detail(self) -> None:
        self._ensure_unlocked("close the detail view")
        self.detail = None

    def _replace_patient(self, updated: PatientSummary) -> None:
        self.patients = [updated if p.id == updated.id else p for p in self.patients]


class PatientProfilePage:
    """Standalone profile page: patient card plus past/future visit tabs."""

    def __init__(self, client: ClinicClient, patient_id: str) -> None:
        self.client = client
        self.patient_id = patient_id
        self.state: LoadState = "idle"
        self.patient: PatientResponse | None = None
        self.consultations: list[ConsultationResponse] = []
        self.active_tab: ProfileTab = "past"
        self.error: str | None = None

    @property
    def found(self) -> bool:
        return self.patient is not None

    async def load(self) -> None:
        """Fetch the patient and its consultations concurrently."""
        self.state = "loading"
        patient, consultations = await asyncio.gather(
            self.client.get_patient(self.patient_id),
            self.client.list_consultations(self.patient_id),
            return_exceptions=True,
        )
        for result in (patient, consultations):
            if isinstance(result, BaseException) and not isinstance(result, ApiError):
                raise result

        self.consultations = [] if isinstance(consultations, ApiError) else consultations
        if isinstance(patient, ApiError):
            logger.warning("Profile %s unavailable: %s", self.patient_id, patient.message)
            self.patient = None
            self.error = "Patient not found" if patient.status_code == 404 else patient.message
            self.state = "errored"
            return
        self.patient = patient
        self.error = None
        self.state = "ready"

    def select_tab(self, tab: str) -> None:
        if tab not in get_args(ProfileTab):
            raise ValueError(f"Unknown tab: {tab}")
        self.active_tab = tab

    def tab_counts(self, today: datetime.date) -> dict[str, int]:
        past, future = partition_by_date(self.consultations, today)
        return {"future": len(future), "past": len(past), "planned": 0}

    def visible_consultations(self, today: datetime.date) -> list[ConsultationResponse]:
        past, future = partition_by_date(self.consultations, today)
        if self.active_tab == "past":
            return past
        if self.active_tab == "future":
            return future
        return []

    def profile(self, today: datetime.date) -> PatientProfile | None:
        if self.patient is None:
            return None
        return build_profile(self.patient, self.consultations, today)

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Optional

from ..catalog.model import AbsenceCatalog
from ..catalog.service import AbsenceCatalogService
from ..core.enums import SaveState
from ..core.exceptions import DomainError, DuplicationConflictError, ValidationError
from ..delegations.service import DelegationRestrictions, DelegationService
from ..duplicates.detector import DuplicateDetector
from ..duplicates.model import DuplicationCheckResult
from ..employees.repository import EmployeeDirectory
from ..grids.loader import to_editable_grid
from ..grids.model import GridEntry, GridWrite, PersistedGrid, TimesheetGrid
from ..validation.grid_validator import (
    CellError,
    GridValidationResult,
    setup_context_for,
    validate_grid,
    validate_grid_setup,
)
from .repository import GridRepository
from .result import SaveResult, SaveResultBuilder
from .serializer import build_grid_title, compute_totals, merge_entries, serialize_entries
from .state import SaveStateMachine

logger = logging.getLogger(__name__)

GENERIC_SAVE_ERROR = "Failed to save timesheet grid"


@dataclass(frozen=True)
class SaveOptions:
    created_by: Optional[str] = None
    grid_session_id: Optional[str] = None
    grid_title: Optional[str] = None
    force_create: bool = False
    check_duplicates: bool = True

    @property
    def runs_duplicate_check(self) -> bool:
        return self.check_duplicates and not self.force_create


@dataclass
class _Prepared:
    grid: TimesheetGrid
    catalog: AbsenceCatalog
    validation: Optional[GridValidationResult] = None


class GridPersistenceEngine:
    """Validates, de-duplicates and stores timesheet grids.

    One row exists per (store, period). A grid that carries the stored row's
    ``id`` (the edit path) or is saved with ``force_create`` merges its cells
    into that row. A new grid without ``id`` whose key is already stored is
    blocked as an ``exact_period`` duplicate so the caller can choose between
    editing the existing grid and forcing the merge; re-saving an unchanged
    grid is only idempotent on the edit path.
    """

    def __init__(
        self,
        grids: GridRepository,
        catalog: AbsenceCatalogService,
        *,
        employees: Optional[EmployeeDirectory] = None,
        delegations: Optional[DelegationService] = None,
        detector: Optional[DuplicateDetector] = None,
    ):
        self._grids = grids
        self._catalog = catalog
        self._employees = employees
        self._delegations = delegations or DelegationService()
        self._detector = detector or DuplicateDetector(grids)
        self._sessions: dict[str, SaveStateMachine] = {}

    # -- session state -----------------------------------------------------

    def _session(self, session_id: str) -> SaveStateMachine:
        machine = self._sessions.get(session_id)
        if machine is None:
            machine = self._sessions[session_id] = SaveStateMachine(session_id)
        return machine

    def is_saving(self, session_id: str) -> bool:
        machine = self._sessions.get(session_id)
        return machine is not None and machine.is_busy

    def session_state(self, session_id: str) -> SaveState:
        machine = self._sessions.get(session_id)
        return machine.state if machine else SaveState.IDLE

    def request_cancel(self, session_id: str) -> bool:
        """Stop the session's save before it reaches storage.

        Raises CancellationNotAllowedError once duplicate checking or
        persisting has started.
        """

        machine = self._sessions.get(session_id)
        if machine is None:
            return False
        return machine.request_cancel()

    # -- read side ---------------------------------------------------------

    async def load_grid_for_edit(self, grid_id: str) -> Optional[TimesheetGrid]:
        row = await self._grids.get_by_id(grid_id)
        return to_editable_grid(row) if row else None

    async def check_duplication(self, grid: TimesheetGrid) -> DuplicationCheckResult:
        normalized = grid.normalized()
        return await self._detector.check_for_duplicate(
            normalized.store_id,
            normalized.period_start,
            normalized.period_end,
            normalized.entries,
            exclude_grid_id=grid.id,
        )

    async def validate(self, grid: TimesheetGrid) -> GridValidationResult:
        prepared = await self._prepare(grid, validate=True)
        return prepared.validation

    # -- preparation -------------------------------------------------------

    async def _resolve_employees(self, grid: TimesheetGrid) -> tuple[TimesheetGrid, list[CellError]]:
        if self._employees is None:
            return grid, []

        found = await self._employees.get_many(grid.employee_ids())
        errors: list[CellError] = []
        entries: list[GridEntry] = []
        zone_id = grid.zone_id

        for entry in grid.entries:
            employee = found.get(entry.employee_id)
            if employee is None:
                errors.append(
                    CellError(entry.employee_id, "", f"Employee {entry.employee_id} not found", entry.employee_name)
                )
                entries.append(entry)
                continue
            entries.append(
                replace(
                    entry,
                    employee_name=entry.employee_name or employee.full_name,
                    position=entry.position or employee.position or "",
                )
            )
            zone_id = zone_id or employee.zone_id

        return replace(grid, entries=entries, zone_id=zone_id), errors

    async def _prepare(self, grid: TimesheetGrid, *, validate: bool) -> _Prepared:
        if validate:
            setup_errors = validate_grid_setup(
                setup_context_for(grid.store_id, grid.entries, grid.period_start, grid.period_end)
            )
            if setup_errors:
                return _Prepared(grid, AbsenceCatalog.pending(), GridValidationResult(False, setup_errors=tuple(setup_errors)))

        normalized = grid.normalized()
        catalog = await self._catalog.load()
        if not validate:
            return _Prepared(normalized, catalog)

        normalized, employee_errors = await self._resolve_employees(normalized)
        restrictions: DelegationRestrictions = await self._delegations.restrictions_for(
            store_id=normalized.store_id,
            start=normalized.period_start,
            end=normalized.period_end,
        )
        result = validate_grid(
            normalized.entries,
            normalized.date_range(),
            catalog,
            setup_context_for(normalized.store_id, normalized.entries, normalized.period_start, normalized.period_end),
            restriction_for=restrictions.is_restricted,
        )
        if employee_errors:
            result = replace(result, is_valid=False, errors=tuple(employee_errors) + result.errors)
        return _Prepared(normalized, catalog, result)

    # -- save ----------------------------------------------------------------

    async def save_timesheet_grid(
        self,
        grid: TimesheetGrid,
        options: Optional[SaveOptions] = None,
        skip_validation: bool = False,
    ) -> SaveResult:
        options = options or SaveOptions()
        session_id = options.grid_session_id or grid.id or str(uuid.uuid4())

        machine = self._session(session_id)
        if machine.is_busy:
            # Overlapping saves are not rejected; the row-level upsert keeps them consistent.
            logger.warning("Session %s already has a save in %s; running another", session_id, machine.state.value)
            machine = SaveStateMachine(session_id)

        logger.info(
            "Saving grid session=%s store=%s period=%s..%s employees=%d",
            session_id, grid.store_id, grid.period_start, grid.period_end, len(grid.entries),
        )
        try:
            return await self._run_save(machine, grid, options, skip_validation)
        except Exception:
            logger.exception("Unexpected error saving grid session %s", session_id)
            return SaveResultBuilder.failure(session_id, GENERIC_SAVE_ERROR, state=machine.state)
        finally:
            machine.reset()
            if self._sessions.get(session_id) is machine:
                del self._sessions[session_id]

    async def _run_save(
        self, machine: SaveStateMachine, grid: TimesheetGrid, options: SaveOptions, skip_validation: bool
    ) -> SaveResult:
        session_id = machine.session_id
        machine.advance(SaveState.VALIDATING)

        try:
            prepared = await self._prepare(grid, validate=not skip_validation)
        except ValidationError as exc:
            return SaveResultBuilder.failure(session_id, str(exc), state=SaveState.VALIDATING)
        except DomainError as exc:
            logger.exception("Preparing grid session %s failed", session_id)
            return SaveResultBuilder.failure(session_id, str(exc), state=SaveState.VALIDATING)

        if prepared.validation is not None and not prepared.validation.can_save:
            logger.info("Grid session %s blocked by validation", session_id)
            return SaveResultBuilder.validation_failed(session_id, prepared.validation)

        if machine.cancel_requested:
            logger.info("Grid session %s cancelled before storage", session_id)
            return SaveResultBuilder.cancelled_result(session_id)

        candidate = prepared.grid
        if options.runs_duplicate_check:
            machine.advance(SaveState.CHECKING_DUPLICATE)
            try:
                await self._detector.ensure_no_duplicate(
                    candidate.store_id,
                    candidate.period_start,
                    candidate.period_end,
                    candidate_entries=candidate.entries,
                    exclude_grid_id=grid.id,
                )
            except DuplicationConflictError as exc:
                return SaveResultBuilder.duplicate_blocked(session_id, exc.result)
            except DomainError as exc:
                return SaveResultBuilder.failure(session_id, str(exc), state=SaveState.CHECKING_DUPLICATE)

        machine.advance(SaveState.PERSISTING)
        try:
            row, created = await self._grids.upsert_merge(
                store_id=candidate.store_id,
                period_start=candidate.period_start,
                period_end=candidate.period_end,
                build=lambda existing: self._build_write(existing, candidate, options, session_id),
            )
        except DomainError as exc:
            logger.exception("Storing grid session %s failed", session_id)
            return SaveResultBuilder.failure(session_id, str(exc), state=SaveState.PERSISTING)
        except Exception:
            logger.exception("Unexpected error storing grid session %s", session_id)
            return SaveResultBuilder.failure(session_id, GENERIC_SAVE_ERROR, state=SaveState.PERSISTING)

        builder = SaveResultBuilder(session_id, SaveState.PERSISTING)
        for entry in candidate.entries:
            builder.add_saved(
                entry.employee_id,
                entry.employee_name,
                is_update=not created,
                effective_hours=round(
                    sum(prepared.catalog.effective_hours(c.status, c.hours) for c in entry.days.values()), 2
                ),
            )

        logger.info(
            "Grid %s %s for session %s (%d employees, %.2f hours)",
            row.id, "created" if created else "updated", session_id, row.employee_count, row.total_hours,
        )
        return builder.build(grid_id=row.id, validation=prepared.validation)

    @staticmethod
    def _build_write(
        existing: Optional[PersistedGrid], grid: TimesheetGrid, options: SaveOptions, session_id: str
    ) -> GridWrite:
        if existing is None:
            payload = serialize_entries(grid.entries)
        else:
            payload = merge_entries(existing.employee_entries, grid.entries)
        total_hours, employee_count = compute_totals(payload)

        return GridWrite(
            store_id=grid.store_id,
            zone_id=grid.zone_id,
            period_start=grid.period_start,
            period_end=grid.period_end,
            employee_entries=payload,
            total_hours=total_hours,
            employee_count=employee_count,
            grid_title=options.grid_title or build_grid_title(grid.period_start, employee_count),
            notes=f"Grid session: {session_id}",
            created_by=options.created_by,
        )

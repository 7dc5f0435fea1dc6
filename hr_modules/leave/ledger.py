"""
Leave Request Ledger (``hr_modules.leave.ledger``).

Responsibility
--------------
Own the mutable leave-request history for a company and expose the only
sanctioned ways to change it: submit a request, then approve, reject or
cancel it while it is still pending.  Balances are read by handing the
complete history to ``EntitlementCalculator.compute_balance``.

Architecture position
---------------------
**Modules layer** -- thin stateful glue over the entitlement engine.
History lives in memory here; a persistence collaborator may seed it
(``LeaveLedger(history=...)``) and read it back (``history()``).

Invariants enforced
-------------------
* ``total_days`` of a request is always the inclusive business-day count
  between its dates; any client-supplied total is ignored.
* Decisions follow ``LEAVE_REQUEST_WORKFLOW``: only pending requests move,
  and approved / rejected / cancelled are final.
* Because balances are recomputed from the history, a decision moves days
  from pending to used (approve) or drops them from pending (reject,
  cancel) and neither figure can go negative.

Failure modes
-------------
* ``LeaveRequestNotFoundError`` for an unknown request id.
* ``InvalidLeaveTransitionError`` for a decision on a non-pending request.
* ``ValidationError`` when the end date precedes the start date.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from datetime import date
from uuid import UUID, uuid4

from hr_engines.entitlement import (
    UAE_WEEKEND_DAYS,
    EntitlementCalculator,
    LeaveBalance,
    business_days_between,
)
from hr_kernel.domain.records import (
    EmployeeSnapshot,
    LeaveRequestRecord,
    LeaveStatus,
    LeaveType,
)
from hr_kernel.exceptions import InvalidLeaveTransitionError, LeaveRequestNotFoundError
from hr_kernel.logging_config import get_logger
from hr_modules.leave.workflows import LEAVE_REQUEST_WORKFLOW

logger = get_logger("modules.leave.ledger")

_ACTION_TARGETS = {
    "approve": LeaveStatus.APPROVED,
    "reject": LeaveStatus.REJECTED,
    "cancel": LeaveStatus.CANCELLED,
}


class LeaveLedger:
    """
    In-memory leave request history with workflow-checked decisions.

    Thread-safe: every read and write of the history holds one lock.
    """

    def __init__(
        self,
        calculator: EntitlementCalculator | None = None,
        history: Iterable[LeaveRequestRecord] = (),
        weekend_days: Iterable[int] = UAE_WEEKEND_DAYS,
    ):
        self._calculator = calculator or EntitlementCalculator()
        self._weekend_days = frozenset(weekend_days)
        self._requests: dict[UUID, LeaveRequestRecord] = {r.id: r for r in history}
        self._lock = threading.Lock()

    # -- writes ----------------------------------------------------------

    def submit(
        self,
        company_id: str,
        employee_id: UUID,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str = "",
        client_total_days: int | None = None,
        request_id: UUID | None = None,
    ) -> LeaveRequestRecord:
        """Record a new pending request counted in business days."""
        total_days = business_days_between(start_date, end_date, self._weekend_days)
        if client_total_days is not None and client_total_days != total_days:
            logger.info("leave_client_total_overridden", extra={
                "employee_id": str(employee_id),
                "client_total_days": client_total_days,
                "total_days": total_days,
            })

        record = LeaveRequestRecord(
            id=request_id or uuid4(),
            company_id=company_id,
            employee_id=employee_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            total_days=total_days,
            status=LeaveStatus.PENDING,
            reason=reason,
        )
        with self._lock:
            self._requests[record.id] = record

        logger.info("leave_request_submitted", extra={
            "request_id": str(record.id),
            "company_id": company_id,
            "employee_id": str(employee_id),
            "leave_type": leave_type.value,
            "total_days": total_days,
        })
        return record

    def approve(self, request_id: UUID) -> LeaveRequestRecord:
        return self._decide(request_id, "approve")

    def reject(self, request_id: UUID) -> LeaveRequestRecord:
        return self._decide(request_id, "reject")

    def cancel(self, request_id: UUID) -> LeaveRequestRecord:
        return self._decide(request_id, "cancel")

    def _decide(self, request_id: UUID, action: str) -> LeaveRequestRecord:
        target = _ACTION_TARGETS[action]
        with self._lock:
            current = self._requests.get(request_id)
            if current is None:
                raise LeaveRequestNotFoundError(str(request_id))
            transition = LEAVE_REQUEST_WORKFLOW.find_transition(current.status.value, action)
            if transition is None:
                logger.warning("leave_transition_rejected", extra={
                    "request_id": str(request_id),
                    "from_status": current.status.value,
                    "action": action,
                })
                raise InvalidLeaveTransitionError(
                    str(request_id), current.status.value, target.value,
                )
            updated = current.with_status(LeaveStatus(transition.to_state))
            self._requests[request_id] = updated

        logger.info("leave_request_decided", extra={
            "request_id": str(request_id),
            "employee_id": str(updated.employee_id),
            "from_status": current.status.value,
            "to_status": updated.status.value,
            "total_days": updated.total_days,
        })
        return updated

    # -- reads -----------------------------------------------------------

    def get(self, request_id: UUID) -> LeaveRequestRecord:
        with self._lock:
            record = self._requests.get(request_id)
        if record is None:
            raise LeaveRequestNotFoundError(str(request_id))
        return record

    def history(self, employee_id: UUID | None = None) -> tuple[LeaveRequestRecord, ...]:
        """Snapshot of the history, optionally for one employee, oldest start first."""
        with self._lock:
            records = list(self._requests.values())
        if employee_id is not None:
            records = [r for r in records if r.employee_id == employee_id]
        return tuple(sorted(records, key=lambda r: (r.start_date, str(r.id))))

    def balance(
        self,
        employee: EmployeeSnapshot,
        year: int,
        as_of: date | None = None,
        carried_over: Mapping[LeaveType, int] | None = None,
    ) -> LeaveBalance:
        """Current balance, recomputed from the full history."""
        return self._calculator.compute_balance(
            employee=employee,
            leave_history=self.history(employee.id),
            year=year,
            as_of=as_of,
            carried_over=carried_over,
        )

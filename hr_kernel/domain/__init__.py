"""
Pure domain layer.

This module contains immutable records and value helpers with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (other than the injectable Clock itself)
- I/O
"""

from hr_kernel.domain.clock import UAE_TIMEZONE, Clock, DeterministicClock, SystemClock
from hr_kernel.domain.records import (
    ContractType,
    EmployeeSnapshot,
    Gender,
    LeaveRequestRecord,
    LeaveStatus,
    LeaveType,
)
from hr_kernel.domain.values import ZERO, quantize_money, to_decimal
from hr_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "UAE_TIMEZONE",
    # Records
    "ContractType",
    "EmployeeSnapshot",
    "Gender",
    "LeaveRequestRecord",
    "LeaveStatus",
    "LeaveType",
    # Values
    "ZERO",
    "quantize_money",
    "to_decimal",
    # Workflow
    "Guard",
    "Transition",
    "Workflow",
]

"""
Leave Module.

Handles:
- Leave request submission with the authoritative business-day count
- Approve / reject / cancel decisions on pending requests
- Balance reads, always recomputed from the full request history
"""

from hr_modules.leave.ledger import LeaveLedger
from hr_modules.leave.workflows import LEAVE_REQUEST_WORKFLOW

__all__ = [
    "LEAVE_REQUEST_WORKFLOW",
    "LeaveLedger",
]

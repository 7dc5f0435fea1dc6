"""
HR Modules.

Stateful orchestration over the pure hr_engines calculators.
Each module contains:
- Domain models (the nouns)
- Workflows (state machines)
- The service object callers drive (ledger / aggregator)

Modules:
- Leave: leave request submission and decisions
- Payroll: monthly payroll runs, loan ledger, persistence companions

Calculation logic lives in the engines; modules own identity, state
transitions and atomicity.
"""

from hr_modules import leave, payroll

__all__ = ["leave", "payroll"]

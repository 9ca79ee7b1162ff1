"""
Workload interfaces and unit result contract for the SQLCipher pool benchmark.

A workload turns one iteration index into one unit of database work. Units
never raise for database failures: they record the failure on the run's
counters and return a `UnitResult` with ``ok=False`` so the orchestrator can
aggregate outcomes from the futures it waits on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, TypedDict, runtime_checkable

if TYPE_CHECKING:
    from cipherbench.infrastructure.context import RunContext


class UnitResult(TypedDict, total=False):
    """
    Outcome of a single workload unit.
    """

    kind: str
    index: int
    ok: bool
    rows: int
    error: Optional[str]


@runtime_checkable
class Workload(Protocol):
    """
    Common interface of the read and write workloads.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the unit of work.
    """

    name: str
    description: str

    def iterations(self, ctx: "RunContext") -> int:
        """Number of units to fan out for this run."""
        ...

    def run_unit(self, ctx: "RunContext", index: int) -> UnitResult:
        """
        Execute one unit of work against the run's handles.

        Parameters
        ----------
        ctx : RunContext
            Pool, shared handle, counters and payload of the current run.
        index : int
            Iteration number, used for log lines only.
        """
        ...


__all__ = ["UnitResult", "Workload"]

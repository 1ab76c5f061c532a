# src/punchlist/units/unit_models.py

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

DEFAULT_STATUS = "Not Started"

DEFAULT_TRADES: dict[str, tuple[str, ...]] = {
    "Electrical": ("Rough-in wiring", "Fixture installation"),
    "Plumbing": ("Rough-in pipes", "Fixture hookup"),
    "Drywall": ("Hang sheets", "Tape and mud"),
    "Painting": ("Prime walls", "Apply finish coats"),
    "Flooring": ("Install subfloor", "Lay finish flooring"),
}


@dataclass(slots=True)
class Task:
    """
    One checklist item.

    Tasks have no id of their own: a task is addressed by its position in the
    trade's list, so inserting before it shifts its index.
    """

    task: str
    completed: bool = False

    def to_doc(self) -> dict[str, Any]:
        return {"task": self.task, "completed": self.completed}

    @classmethod
    def from_doc(cls, raw: Any) -> Task:
        if not isinstance(raw, dict):
            return cls(task=str(raw or ""), completed=False)
        return cls(task=str(raw.get("task") or ""), completed=bool(raw.get("completed", False)))


@dataclass(slots=True)
class Unit:
    """
    One unit document.

    Stored trade values that are not task lists are kept in unparsed_trades and
    written back untouched, so rewriting the trades map never drops them.
    """

    name: str
    address: str
    status: str = DEFAULT_STATUS
    trades: dict[str, list[Task]] = field(default_factory=dict)
    unparsed_trades: dict[str, Any] = field(default_factory=dict)
    # The stored trades field exists but is not a map at all.
    malformed_trades: bool = False

    def tasks_for(self, trade: str) -> list[Task]:
        # A trade absent from the map has zero tasks.
        return self.trades.get(trade, [])

    def trade_names(self) -> list[str]:
        return list(self.trades.keys())

    def trades_doc(self) -> dict[str, Any]:
        doc: dict[str, Any] = {trade: [t.to_doc() for t in tasks] for trade, tasks in self.trades.items()}
        for trade, raw in self.unparsed_trades.items():
            # A parsed list for the same trade (e.g. after add_task) replaces the bad value.
            doc.setdefault(trade, copy.deepcopy(raw))
        return doc

    def to_doc(self) -> dict[str, Any]:
        """Document value; the name is the document key and is not stored inside."""
        return {"address": self.address, "status": self.status, "trades": self.trades_doc()}

    @classmethod
    def from_doc(cls, name: str, raw: dict[str, Any]) -> Unit:
        trades_raw = raw.get("trades")
        trades: dict[str, list[Task]] = {}
        unparsed: dict[str, Any] = {}
        if isinstance(trades_raw, dict):
            for trade, tasks in trades_raw.items():
                if isinstance(tasks, list):
                    trades[str(trade)] = [Task.from_doc(t) for t in tasks]
                else:
                    unparsed[str(trade)] = tasks
        return cls(
            name=name,
            address=str(raw.get("address") or ""),
            status=str(raw.get("status") or DEFAULT_STATUS),
            trades=trades,
            unparsed_trades=unparsed,
            malformed_trades=bool(trades_raw) and not isinstance(trades_raw, dict),
        )


def default_trades() -> dict[str, list[Task]]:
    """Fresh default checklist; every call returns new Task objects."""
    return {trade: [Task(task=t) for t in tasks] for trade, tasks in DEFAULT_TRADES.items()}


def new_unit(name: str, address: str) -> Unit:
    return Unit(name=name, address=address, status=DEFAULT_STATUS, trades=default_trades())

# src/punchlist/llm/offline.py

from __future__ import annotations

_CANNED: dict[str, list[str]] = {
    "Electrical": [
        "Rough-in wiring",
        "Install panel",
        "Pull permits for inspection",
        "Install outlets and switches",
        "Test GFCI circuits",
    ],
    "Plumbing": [
        "Rough-in pipes",
        "Pressure test supply lines",
        "Install water heater",
        "Set toilets",
        "Check drains for leaks",
    ],
    "Drywall": [
        "Hang sheets",
        "Install corner bead",
        "Tape and mud",
        "Sand joints",
        "Patch nail pops",
    ],
    "Painting": [
        "Prime walls",
        "Caulk trim",
        "Cut in edges",
        "Apply finish coats",
        "Touch up scuffs",
    ],
    "Flooring": [
        "Install subfloor",
        "Level low spots",
        "Lay underlayment",
        "Lay finish flooring",
        "Install transitions",
    ],
}


class OfflineSuggestionGateway:
    """
    Offline deterministic suggestion gateway used for demos when no external API is configured.

    Known trades get a fixed list that overlaps the default checklist, so the
    duplicate filter is visible; other trades get generic tasks.
    """

    async def suggest_tasks(self, trade: str) -> list[str]:
        canned = _CANNED.get(trade)
        if canned is not None:
            return list(canned)
        return [
            f"Review {trade} scope",
            f"Order {trade} materials",
            f"Rough-in {trade} work",
            f"Finish {trade} work",
            f"Inspect {trade} work",
        ]

    async def aclose(self) -> None:
        return

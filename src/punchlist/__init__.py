"""Construction punch-list tracker: units, per-trade checklists, live document store."""

__version__ = "0.1.0"

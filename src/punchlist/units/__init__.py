"""
Unit subsystem.

Components:
- unit_models.py: data structures (Unit, Task) and the default checklist
- unit_repository.py: unit/task operations on top of a document store
"""

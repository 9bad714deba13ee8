"""
Feature modules for the tabulator.

Each feature is a self-contained module with:
- models.py - SQLAlchemy models or plain dataclasses
- schemas.py - Pydantic schemas (optional)
- service.py - Business logic (optional)
- repository.py - Data access (optional)
"""

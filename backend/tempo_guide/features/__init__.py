"""
Feature modules for Tempo Guide.

Each feature is a self-contained module with:
- models.py - SQLAlchemy models
- repository.py - Data access
- service modules - Business logic (flows, importers, parsers)
"""

"""Annotation snapshot persistence.

- database: async SQLAlchemy engine, session factory and declarative Base
- models: design_component_annotations ORM table
- repository: versioned snapshot CRUD
- cache: local JSON snapshot cache used when the database is unreachable
- service: save/load entry points combining repository and cache
"""

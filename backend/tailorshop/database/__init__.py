"""
Database package initialization.

The package follows a modular structure:
- base: declarative base, mixins and portable column types
- connection: async engine and session management
- models: ORM models for inventory, rentals, payments and damage records
"""

__all__ = []

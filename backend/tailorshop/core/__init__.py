"""
Core package for shared utilities.

Holds configuration and logging shared by the API, services and
database layers.
"""

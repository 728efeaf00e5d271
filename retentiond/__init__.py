"""
retentiond - Blob store retention cleanup engine.

This package contains the scheduled cleanup that scans the object store,
classifies objects against retention policies and deletes expired ones
while never touching protected prefixes.
"""

__version__ = "0.1.0"

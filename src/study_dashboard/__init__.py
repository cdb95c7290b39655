"""
Study task tracking dashboard.

Packages:
- storage/: key-value persistence adapter (JSON files / in-memory)
- tasks/: task store, query engine, reports, export, timer
- auth/: user directory and session
- cli/, connectors/: console front end and composition root
"""

__version__ = "0.1.0"

"""
Upload Kernel

Shared infrastructure for the bulk upload pipeline:
- Structured JSON logging with job-scoped context
- Typed exception hierarchy
- Injectable clock
- SQLAlchemy base classes and engine/session management
"""

__version__ = "0.1.0"

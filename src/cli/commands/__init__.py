"""CLI command groups.

Command Groups:
- db: Connection URIs, database administration, schema dumps and queries
"""

from .db import db_app

__all__ = ["db_app"]

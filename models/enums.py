"""
Shared enumerations used across the entire project.

Inheriting from str means the values serialize to JSON as plain strings,
work as SQLAlchemy column values and validate as FastAPI request fields.
"""

import enum


class JobKind(str, enum.Enum):
    ARTICLE = "article"
    NOVEL = "novel"


class AccessStatus(str, enum.Enum):
    PENDING = "PENDING"        # requested, waiting for an admin decision
    WHITELIST = "WHITELIST"    # allowed to use the public endpoints
    BLACKLIST = "BLACKLIST"    # permanently refused

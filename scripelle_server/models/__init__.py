# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from scripelle_server.models.base import Base
from scripelle_server.models.document import Document
from scripelle_server.models.user import User

__all__ = [
    "Base",
    "Document",
    "User",
]

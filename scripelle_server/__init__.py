# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Scripelle Server - authentication and documents API."""

__version__ = "0.1.0"

# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

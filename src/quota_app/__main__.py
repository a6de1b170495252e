# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

from .main import run

run()

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Juicebox Contributors
"""
Juicebox Core Schema Module

Request bodies for the reward endpoints.
"""

from juicebox_core.schema.serialization import SchemaModel, dump_schema, load_schema
from juicebox_core.schema.requests import (
    SpendCoinsRequest,
    UseReferralRequest,
    WatchAdRequest,
)

__all__ = [
    "SchemaModel",
    "dump_schema",
    "load_schema",
    "SpendCoinsRequest",
    "UseReferralRequest",
    "WatchAdRequest",
]

# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Juicebox Core Engine
====================

Coin economy for the Juicebox storefront: ad-watch rewards, daily streaks,
referrals and VIP multipliers on top of an atomic account store.
"""

__version__ = "0.4.0"

# Bump when reward rules change so persisted ledger entries can be attributed.
REWARD_RULES_VERSION = "coins_v2"

# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Juicebox Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with Juicebox Engine. If not, see <https://www.gnu.org/licenses/>.

import os


def is_local_run() -> bool:
    """
    Best-effort detection of local/dev runs without requiring extra configuration.
    Prefer emulator flags because they are already part of local setup.
    """
    if os.getenv("FIRESTORE_EMULATOR_HOST"):
        return True

    env = (os.getenv("JUICEBOX_ENV") or os.getenv("ENV") or "").strip().lower()
    if env in ("local", "dev", "development", "test"):
        return True

    return False

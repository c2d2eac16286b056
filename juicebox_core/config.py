# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import os
from typing import Optional

from pydantic import BaseModel, Field

from juicebox_core.runtime_config import RewardsRuntimeConfig


class JuiceboxConfig(BaseModel):
    """
    Deployment configuration for the Juicebox Core Engine.
    Decouples the engine from environment variables.
    """

    # Firestore
    firestore_project_id: Optional[str] = Field(None, description="GCP project hosting the Firestore database")
    firestore_database: Optional[str] = Field(None, description="Named Firestore database (default database if unset)")
    credentials_path: Optional[str] = Field(None, description="Service account JSON path (ADC when unset)")
    emulator_host: Optional[str] = Field(None, description="host:port of a local Firestore emulator")

    # Runtime (reward rules, feature flags)
    runtime: RewardsRuntimeConfig = Field(default_factory=RewardsRuntimeConfig.load_from_env)

    model_config = {"arbitrary_types_allowed": True}

    @classmethod
    def from_env(cls) -> "JuiceboxConfig":
        return cls(
            firestore_project_id=os.getenv("JUICEBOX_FIRESTORE_PROJECT_ID") or os.getenv("GOOGLE_CLOUD_PROJECT"),
            firestore_database=os.getenv("JUICEBOX_FIRESTORE_DATABASE") or None,
            credentials_path=os.getenv("JUICEBOX_CREDENTIALS_PATH") or os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
            emulator_host=os.getenv("FIRESTORE_EMULATOR_HOST") or None,
            runtime=RewardsRuntimeConfig.load_from_env(),
        )

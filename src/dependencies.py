"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from src.config import Settings, get_settings
from src.cycle.config_loader import CycleConfig, get_cycle_config


def get_cycle_constants() -> CycleConfig:
    """Current cycle constants (hot-reloadable, see ``reload_cycle_config``)."""
    return get_cycle_config()


# Annotated shortcuts for route signatures
AppSettings = Annotated[Settings, Depends(get_settings)]
CycleConfigDep = Annotated[CycleConfig, Depends(get_cycle_constants)]

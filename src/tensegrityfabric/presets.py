from __future__ import annotations

from typing import Mapping, Optional, Sequence

from .engine import FabricEngine
from .errors import PreconditionError
from .features import numeric_features
from .model import IntervalRole, Stage
from .tenscript import parse_tenscript
from .tensegrity import Tensegrity

BOOTSTRAP = {
    "One": "'One':(0)",
    "Column": "'Column':(5)",
    "Omni": "'Omni':LR:(0)",
    "Square Column": "'Square Column':P4:(4)",
    "Tapered": "'Tapered':(4,S90)",
    "Branches": "'Branches':LR:(0,b(2),c(2),d(2))",
    "Halo": "'Halo':LR:(0,b(3,MA0),c(3,MA0)):0=join",
    "Spread": "'Spread':LR:(0,b(2,MA0),C(2,MA0)):0=distance80",
    "Anchored": "'Anchored':(Ma1,A(3)):1=anchor",
}


def bootstrap_names() -> Sequence[str]:
    """Names of the built-in tenscripts."""
    return list(BOOTSTRAP)


def build_fabric(
    code: str,
    location: Sequence[float] = (0.0, 0.0, 0.0),
    scale: float = 100.0,
    overrides: Optional[Mapping] = None,
) -> Tensegrity:
    """Create a fabric from tenscript text or the name of a built-in one."""

    numeric_feature = numeric_features(overrides)
    tenscript = parse_tenscript(BOOTSTRAP.get(code, code))
    return Tensegrity(location, scale, numeric_feature, FabricEngine(numeric_feature), tenscript)


def grow(tensegrity: Tensegrity, max_frames: int = 1000) -> Stage:
    """Iterate until growth is over and every join has connected.

    Distance complexes never connect and do not hold up the return.

    Raises
    ------
    PreconditionError
        When ``max_frames`` frames were not enough.
    """

    for _ in range(max_frames):
        stage = tensegrity.iterate()
        joining = any(
            complex_.connector.role == IntervalRole.CONNECTOR_PULL
            for complex_ in tensegrity.pull_complexes
        )
        if stage != Stage.GROWING and not joining:
            return stage
    raise PreconditionError(f"fabric still growing after {max_frames} frames")


__all__ = ["BOOTSTRAP", "bootstrap_names", "build_fabric", "grow"]

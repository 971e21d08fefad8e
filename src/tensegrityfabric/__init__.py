from .builder import TensegrityBuilder
from .engine import FabricEngine
from .errors import (
    ConstructionError,
    FabricError,
    PreconditionError,
    TenscriptError,
    TransitionError,
)
from .export import fabric_output, to_interval_dataframe
from .features import WorldFeature, numeric_features
from .life import Life, LifeTransition
from .model import FaceAction, IntervalRole, MarkAction, Spin, Stage
from .optimizer import adjusted_stiffness, strain_frame
from .presets import BOOTSTRAP, build_fabric, grow
from .tenscript import Tenscript, parse_tenscript
from .tensegrity import Tensegrity

__all__ = [
    "TensegrityBuilder",
    "FabricEngine",
    "ConstructionError",
    "FabricError",
    "PreconditionError",
    "TenscriptError",
    "TransitionError",
    "fabric_output",
    "to_interval_dataframe",
    "WorldFeature",
    "numeric_features",
    "Life",
    "LifeTransition",
    "FaceAction",
    "IntervalRole",
    "MarkAction",
    "Spin",
    "Stage",
    "adjusted_stiffness",
    "strain_frame",
    "BOOTSTRAP",
    "build_fabric",
    "grow",
    "Tenscript",
    "parse_tenscript",
    "Tensegrity",
]

"""Output governance: size estimation, degradation and artifact placement."""

from .governor import LayerPlan, Placement, estimate_layers, place_artifact, plan_layers
from .storage import named_filename, timestamped_filename, write_artifact

__all__ = [
    "LayerPlan",
    "Placement",
    "estimate_layers",
    "place_artifact",
    "plan_layers",
    "named_filename",
    "timestamped_filename",
    "write_artifact",
]

"""Parametric twisted-tower mesh generator."""

from .builder import GeneratedMesh, TowerMeshBuilder, build_tower, compute_normals
from .colour import ColorRamp
from .easing import CubicBezier, GradientEvaluator, evaluate
from .exporter import AXIS_REMAP, EmptyMeshError, MeshExporter, export_obj, parse_obj_counts
from .params import (
    DEFAULT_PARAMS,
    BezierControlPoints,
    Gradient,
    ParameterError,
    ParameterSet,
)
from .profile import BaseProfile, BaseProfileCache, index_count, vertex_count

__version__ = "0.1.0"

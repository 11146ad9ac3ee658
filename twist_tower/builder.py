"""
builder.py
==========
Stacks one transformed copy of the base profile per floor into a single
vertex / normal / colour / index buffer set.

Floors do not share vertices: every slab is its own closed shell, so twist,
scale and colour may jump from one floor to the next without seams.
"""

import math
from dataclasses import dataclass

import numpy as np

from .colour import ColorRamp
from .easing import GradientEvaluator
from .params import ParameterError, ParameterSet
from .profile import BaseProfileCache

# Effective slab radius never drops below this (world units).
MIN_RADIUS = 0.05
# Midtone lift handed to the colour ramp.
COLOUR_BRIGHTEN = 0.3
# Largest coordinate the float32 output buffers can hold.
MAX_EXTENT = float(np.finfo(np.float32).max)


@dataclass
class GeneratedMesh:
    """
    Merged buffers of one build.  Whoever holds the mesh (viewer or an
    export caller) owns it and must call release() once it is replaced.
    """
    positions: np.ndarray   # (N, 3) float32
    normals: np.ndarray     # (N, 3) float32, or None
    colours: np.ndarray     # (N, 3) float32, RGB 0..1
    indices: np.ndarray     # (T, 3) uint32
    floors: int = 0
    sides: int = 0
    released: bool = False

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices)

    @property
    def index_count(self) -> int:
        return self.indices.size

    def release(self):
        """Drop the buffers; the mesh is empty afterwards."""
        self.positions = np.zeros((0, 3), dtype=np.float32)
        self.normals = None
        self.colours = np.zeros((0, 3), dtype=np.float32)
        self.indices = np.zeros((0, 3), dtype=np.uint32)
        self.released = True


def compute_normals(verts: np.ndarray, indices: np.ndarray, n_verts: int = None):
    """Accumulate face normals into per-vertex normals."""
    if n_verts is None:
        n_verts = len(verts)
    verts = np.asarray(verts, dtype=np.float64)
    indices = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    v0 = verts[indices[:, 0]]
    v1 = verts[indices[:, 1]]
    v2 = verts[indices[:, 2]]
    fn = np.cross(v1 - v0, v2 - v0)

    normals = np.zeros((n_verts, 3), dtype=np.float64)
    for i in range(3):
        np.add.at(normals, indices[:, i], fn)

    nlen = np.linalg.norm(normals, axis=1, keepdims=True)
    nlen = np.where(nlen == 0, 1.0, nlen)
    return (normals / nlen).astype(np.float32)


def check_extent(params: ParameterSet):
    """Raise ParameterError when the tower would not fit in float32 buffers."""
    radius = params.base_radius * max(abs(params.scale_min), abs(params.scale_max), MIN_RADIUS)
    half_height = 0.5 * params.height + params.slab_thickness
    for name, value in (("radius", radius), ("height", half_height)):
        if not math.isfinite(value) or value >= MAX_EXTENT:
            raise ParameterError(f"[mesh] Tower {name} {value!r} overflows the float32 buffers")


def floor_transform(y: float, twist_rad: float, radius: float, thickness: float) -> np.ndarray:
    """4x4 matrix: translate(0, y, 0) . rotateY(twist) . scale(radius, thickness, radius)."""
    c, s = math.cos(twist_rad), math.sin(twist_rad)
    return np.array([
        [c * radius, 0.0, s * radius, 0.0],
        [0.0, thickness, 0.0, y],
        [-s * radius, 0.0, c * radius, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ], dtype=np.float64)


def normal_matrix(matrix: np.ndarray) -> np.ndarray:
    """Inverse-transpose of the upper 3x3 block."""
    return np.linalg.inv(matrix[:3, :3]).T


class TowerMeshBuilder:
    """
    Builds a GeneratedMesh from a ParameterSet.  Owns its profile cache;
    pass one in to share templates between builders.
    """

    def __init__(self, cache: BaseProfileCache = None):
        self.cache = cache if cache is not None else BaseProfileCache()

    def build(self, params: ParameterSet, with_normals: bool = True) -> GeneratedMesh:
        check_extent(params)
        profile = self.cache.profile(params.floor_sides)
        base_v = profile.positions.astype(np.float64)
        base_n = profile.normals.astype(np.float64)
        base_i = profile.indices

        floors = params.floors
        verts_per_slab = profile.vertex_count
        tris_per_slab = len(base_i)

        positions = np.empty((floors * verts_per_slab, 3), dtype=np.float32)
        normals = np.empty((floors * verts_per_slab, 3), dtype=np.float32) if with_normals else None
        colours = np.empty((floors * verts_per_slab, 3), dtype=np.float32)
        indices = np.empty((floors * tris_per_slab, 3), dtype=np.uint32)

        twist_ease = GradientEvaluator(params.twist_gradient, params.bezier)
        scale_ease = GradientEvaluator(params.scale_gradient, params.bezier)
        ramp = ColorRamp(params.colour_start, params.colour_end, brighten=COLOUR_BRIGHTEN)

        twist_start = math.radians(params.twist_min)
        twist_range = math.radians(params.twist_max - params.twist_min)
        spacing = params.spacing
        start_y = -0.5 * spacing * (floors - 1)

        ts = np.zeros(floors) if floors == 1 else np.arange(floors) / (floors - 1)
        floor_colours = ramp.sample(ts).astype(np.float32)

        for floor in range(floors):
            t = float(ts[floor])
            twist = twist_start + twist_range * twist_ease(t)
            scale = params.scale_min + (params.scale_max - params.scale_min) * scale_ease(t)
            radius = max(MIN_RADIUS, params.base_radius * scale)
            y = 0.0 if floors == 1 else start_y + floor * spacing

            matrix = floor_transform(y, twist, radius, params.slab_thickness)
            vs = slice(floor * verts_per_slab, (floor + 1) * verts_per_slab)

            positions[vs] = base_v @ matrix[:3, :3].T + matrix[:3, 3]
            if with_normals:
                n = base_n @ normal_matrix(matrix).T
                nlen = np.linalg.norm(n, axis=1, keepdims=True)
                normals[vs] = n / np.where(nlen == 0, 1.0, nlen)
            colours[vs] = floor_colours[floor]

            indices[floor * tris_per_slab:(floor + 1) * tris_per_slab] = base_i + floor * verts_per_slab

        print(f"[mesh] Tower: {floors} floors x {profile.sides} sides  |  "
              f"{len(positions):,} vertices  |  {len(indices):,} triangles")

        return GeneratedMesh(positions, normals, colours, indices,
                             floors=floors, sides=profile.sides)


def build_tower(params: ParameterSet, cache: BaseProfileCache = None,
                with_normals: bool = True) -> GeneratedMesh:
    """One-shot build without keeping a builder around."""
    return TowerMeshBuilder(cache).build(params, with_normals=with_normals)

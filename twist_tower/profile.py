"""
Unit polygon-prism cross-section replicated once per floor, plus the cache
that hands out independent copies of it.
"""

import math
from dataclasses import dataclass

import numpy as np

from .params import clamp_sides


def vertex_count(sides: int) -> int:
    """4 per side quad + (sides rim + 1 centre) per cap."""
    return 6 * sides + 2


def index_count(sides: int) -> int:
    """2 triangles per side + sides triangles per cap."""
    return 12 * sides


@dataclass
class BaseProfile:
    sides: int
    positions: np.ndarray   # (V, 3) float32
    normals: np.ndarray     # (V, 3) float32
    indices: np.ndarray     # (T, 3) uint32

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def index_count(self) -> int:
        return self.indices.size

    def copy(self) -> "BaseProfile":
        return BaseProfile(
            self.sides,
            self.positions.copy(),
            self.normals.copy(),
            self.indices.copy(),
        )


def build_base_profile(sides: int) -> BaseProfile:
    """
    Flat-shaded prism of radius 1 spanning Y = -0.5 .. +0.5.
    Consists of: one quad per side, bottom fan, top fan.
    Every face has its own vertices so normals stay crisp.

    Vertex k sits at angle theta_k around +Y with x = sin(theta), z = cos(theta),
    so theta = 0 points at +Z.  Triangles and squares are turned by pi/sides
    so a face (not a corner) looks down +Z.
    """
    offset = math.pi / sides if sides in (3, 4) else 0.0
    angles = offset + np.arange(sides, dtype=np.float64) * (2.0 * math.pi / sides)
    rim = np.stack([np.sin(angles), np.zeros(sides), np.cos(angles)], axis=1)
    nxt = np.roll(rim, -1, axis=0)

    all_v, all_n, all_i = [], [], []
    base = 0

    # ── sides ─────────────────────────────────────────────────────────────
    # per side: [bottom k, bottom k+1, top k+1, top k]
    lo = np.array([0.0, -0.5, 0.0])
    hi = np.array([0.0, 0.5, 0.0])
    side_v = np.stack([rim + lo, nxt + lo, nxt + hi, rim + hi], axis=1).reshape(-1, 3)
    mid = angles + math.pi / sides
    face_n = np.stack([np.sin(mid), np.zeros(sides), np.cos(mid)], axis=1)
    side_n = np.repeat(face_n, 4, axis=0)
    q = np.arange(sides) * 4
    side_i = np.concatenate([
        np.stack([q, q + 1, q + 2], axis=1),
        np.stack([q, q + 2, q + 3], axis=1),
    ], axis=0)
    all_v.append(side_v); all_n.append(side_n); all_i.append(side_i)
    base += len(side_v)

    k = np.arange(sides)
    k1 = (k + 1) % sides

    # ── bottom cap (normal = -Y) ──────────────────────────────────────────
    cap_b_v = np.concatenate([rim + lo, [[0.0, -0.5, 0.0]]], axis=0)
    cap_b_n = np.tile([0.0, -1.0, 0.0], (sides + 1, 1))
    ctr = sides
    cap_b_i = np.stack([k1, k, np.full(sides, ctr)], axis=1) + base
    all_v.append(cap_b_v); all_n.append(cap_b_n); all_i.append(cap_b_i)
    base += len(cap_b_v)

    # ── top cap (normal = +Y) ─────────────────────────────────────────────
    cap_t_v = np.concatenate([rim + hi, [[0.0, 0.5, 0.0]]], axis=0)
    cap_t_n = np.tile([0.0, 1.0, 0.0], (sides + 1, 1))
    cap_t_i = np.stack([k, k1, np.full(sides, ctr)], axis=1) + base
    all_v.append(cap_t_v); all_n.append(cap_t_n); all_i.append(cap_t_i)

    return BaseProfile(
        sides,
        np.concatenate(all_v, axis=0).astype(np.float32),
        np.concatenate(all_n, axis=0).astype(np.float32),
        np.concatenate(all_i, axis=0).astype(np.uint32),
    )


class BaseProfileCache:
    """
    Side-count keyed store of unit profiles.  Templates never leave the
    cache: every lookup returns a deep copy.
    """

    def __init__(self):
        self._templates = {}

    def __len__(self):
        return len(self._templates)

    def __contains__(self, sides):
        return clamp_sides(sides) in self._templates

    def profile(self, sides) -> BaseProfile:
        key = clamp_sides(sides)
        template = self._templates.get(key)
        if template is None:
            template = self._templates.setdefault(key, build_base_profile(key))
        return template.copy()

    def clear(self):
        self._templates.clear()

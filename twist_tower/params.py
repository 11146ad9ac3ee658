"""
params.py
=========
Immutable parameter snapshot for one tower build.

A ParameterSet is captured (and validated) once, handed to the builder, and
never mutated afterwards.  Hosts that edit parameters live create a fresh
snapshot with ``ParameterSet.replace(...)`` for every regeneration.
"""

import math
import numbers
from dataclasses import dataclass, field, fields, replace as dc_replace
from enum import Enum

from PIL import ImageColor

MIN_SIDES = 3
MAX_SIDES = 128
# Used when neither floor_spacing nor total_height is given.
DEFAULT_FLOOR_SPACING = 1.5


class ParameterError(ValueError):
    """Raised when a parameter snapshot cannot describe a valid tower."""


class Gradient(str, Enum):
    """Easing kinds selectable for the twist and scale ramps."""
    LINEAR = "linear"
    EASE_IN = "easeIn"
    EASE_OUT = "easeOut"
    EASE_IN_OUT = "easeInOut"
    BEZIER = "bezier"

    @classmethod
    def coerce(cls, value) -> "Gradient":
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key == member.value or key.upper() == member.name:
                return member
        # Accept "ease_in_out", "ease-in-out", "EaseInOut" ...
        squashed = key.replace("_", "").replace("-", "").lower()
        for member in cls:
            if squashed == member.value.lower():
                return member
        raise ParameterError(f"[params] Unknown gradient kind: {value!r}")


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def clamp_sides(sides) -> int:
    """Round to the nearest integer and clamp into [MIN_SIDES, MAX_SIDES]."""
    try:
        v = float(sides)
    except (TypeError, ValueError):
        return MIN_SIDES
    if math.isnan(v):
        return MIN_SIDES
    if math.isinf(v):
        return MAX_SIDES if v > 0 else MIN_SIDES
    n = int(round(v))
    return max(MIN_SIDES, min(MAX_SIDES, n))


@dataclass(frozen=True)
class BezierControlPoints:
    """
    Handles of a cubic-bezier easing curve running from (0, 0) to (1, 1).
    Both points are clamped into the unit square on construction.
    """
    p1: tuple = (0.25, 0.1)
    p2: tuple = (0.75, 0.9)

    def __post_init__(self):
        for name in ("p1", "p2"):
            point = getattr(self, name)
            try:
                x, y = (float(c) for c in point)
            except (TypeError, ValueError):
                raise ParameterError(f"[params] Bezier {name} must be an (x, y) pair, got {point!r}")
            if not (math.isfinite(x) and math.isfinite(y)):
                raise ParameterError(f"[params] Bezier {name} is not finite: {point!r}")
            object.__setattr__(self, name, (clamp01(x), clamp01(y)))


def parse_colour(value) -> tuple:
    """
    Normalise a colour to an (r, g, b) float triple in [0, 1].

    Accepts anything Pillow's ImageColor understands ("#54d2ff", "hotpink",
    "rgb(10, 20, 30)"), an RGB tuple of 0-255 ints, or an RGB tuple of 0-1
    floats.
    """
    if isinstance(value, str):
        try:
            rgb = ImageColor.getrgb(value)
        except ValueError:
            raise ParameterError(f"[params] Unrecognised colour: {value!r}")
        return tuple(c / 255.0 for c in rgb[:3])

    try:
        comps = [float(c) for c in value]
    except (TypeError, ValueError):
        raise ParameterError(f"[params] Colour must be a string or RGB triple, got {value!r}")
    if len(comps) not in (3, 4):
        raise ParameterError(f"[params] Colour needs 3 components, got {len(comps)}")
    comps = comps[:3]
    if not all(math.isfinite(c) for c in comps):
        raise ParameterError(f"[params] Colour has non-finite component: {value!r}")

    # Integer tuples (or anything above 1.0) are 8-bit channels.
    if any(c > 1.0 for c in comps) or all(isinstance(c, numbers.Integral) for c in value[:3]):
        comps = [c / 255.0 for c in comps]
    return tuple(clamp01(c) for c in comps)


def _finite(name: str, value) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ParameterError(f"[params] {name} must be a number, got {value!r}")
    if not math.isfinite(v):
        raise ParameterError(f"[params] {name} must be finite, got {value!r}")
    return v


def _positive(name: str, value) -> float:
    v = _finite(name, value)
    if v <= 0.0:
        raise ParameterError(f"[params] {name} must be > 0, got {value!r}")
    return v


@dataclass(frozen=True)
class ParameterSet:
    """
    Every shape-defining input of the tower.

    Exactly one spacing rule is used: ``floor_spacing`` when set, otherwise
    ``total_height / (floors - 1)`` when set, otherwise DEFAULT_FLOOR_SPACING.
    ``auto_rotate`` is only read by the viewer.
    """
    floors: int = 32
    floor_spacing: float = None
    total_height: float = None
    base_radius: float = 6.0
    slab_thickness: float = 0.5
    floor_sides: int = 6
    twist_min: float = 0.0
    twist_max: float = 260.0
    scale_min: float = 0.4
    scale_max: float = 1.0
    twist_gradient: Gradient = Gradient.LINEAR
    scale_gradient: Gradient = Gradient.LINEAR
    bezier: BezierControlPoints = field(default_factory=BezierControlPoints)
    colour_start: tuple = "#54d2ff"
    colour_end: tuple = "#ff8ccf"
    auto_rotate: bool = False

    def __post_init__(self):
        def setf(name, value):
            object.__setattr__(self, name, value)

        floors = _finite("floors", self.floors)
        if floors != int(floors):
            raise ParameterError(f"[params] floors must be a whole number, got {self.floors!r}")
        if floors < 1:
            raise ParameterError(f"[params] floors must be >= 1, got {self.floors!r}")
        setf("floors", int(floors))

        if self.floor_spacing is not None:
            setf("floor_spacing", _positive("floor_spacing", self.floor_spacing))
        if self.total_height is not None:
            setf("total_height", _positive("total_height", self.total_height))

        setf("base_radius", _positive("base_radius", self.base_radius))
        setf("slab_thickness", _positive("slab_thickness", self.slab_thickness))
        setf("floor_sides", clamp_sides(self.floor_sides))

        for name in ("twist_min", "twist_max", "scale_min", "scale_max"):
            setf(name, _finite(name, getattr(self, name)))

        setf("twist_gradient", Gradient.coerce(self.twist_gradient))
        setf("scale_gradient", Gradient.coerce(self.scale_gradient))

        if not isinstance(self.bezier, BezierControlPoints):
            try:
                p1, p2 = self.bezier
            except (TypeError, ValueError):
                raise ParameterError(f"[params] bezier must be a (p1, p2) pair, got {self.bezier!r}")
            setf("bezier", BezierControlPoints(p1, p2))

        setf("colour_start", parse_colour(self.colour_start))
        setf("colour_end", parse_colour(self.colour_end))
        setf("auto_rotate", bool(self.auto_rotate))

    @property
    def spacing(self) -> float:
        """Vertical distance between consecutive floors."""
        if self.floors <= 1:
            return 0.0
        if self.floor_spacing is not None:
            return self.floor_spacing
        if self.total_height is not None:
            return self.total_height / (self.floors - 1)
        return DEFAULT_FLOOR_SPACING

    @property
    def height(self) -> float:
        """Distance between the centres of the lowest and highest floor."""
        return self.spacing * (self.floors - 1)

    def replace(self, **changes) -> "ParameterSet":
        return dc_replace(self, **changes)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_PARAMS = ParameterSet()

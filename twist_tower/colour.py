"""
Perceptual colour ramp between two endpoint colours.

Interpolation happens in OKLCh (the polar form of OKLab): lightness and
chroma are lerped, hue follows the shorter arc.  Mixing this way keeps
saturated endpoints from passing through the grey, muddy midtones a raw
sRGB channel lerp produces.
"""

import math

import numpy as np

from .params import clamp01, parse_colour

# Chroma below this is treated as grey; its hue is meaningless.
ACHROMATIC_CHROMA = 2e-3
# OKLab lightness step per unit of brighten (chroma.js uses 18 on the Lab 0-100 scale).
BRIGHTEN_STEP = 0.18

_LMS_FROM_LINEAR = np.array([
    [0.4122214708, 0.5363325363, 0.0514459929],
    [0.2119034982, 0.6806995451, 0.1073969566],
    [0.0883024619, 0.2817188376, 0.6299787005],
])
_LAB_FROM_LMS = np.array([
    [0.2104542553, 0.7936177850, -0.0040720468],
    [1.9779984951, -2.4285922050, 0.4505937099],
    [0.0259040371, 0.7827717662, -0.8086757660],
])
_LMS_FROM_LAB = np.array([
    [1.0, 0.3963377774, 0.2158037573],
    [1.0, -0.1055613458, -0.0638541728],
    [1.0, -0.0894841775, -1.2914855480],
])
_LINEAR_FROM_LMS = np.array([
    [4.0767416621, -3.3077115913, 0.2309699292],
    [-1.2684380046, 2.6097574011, -0.3413193965],
    [-0.0041960863, -0.7034186147, 1.7076147010],
])


def srgb_to_linear(c: np.ndarray) -> np.ndarray:
    c = np.asarray(c, dtype=np.float64)
    return np.where(c <= 0.04045, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)


def linear_to_srgb(c: np.ndarray) -> np.ndarray:
    c = np.clip(np.asarray(c, dtype=np.float64), 0.0, None)
    return np.where(c <= 0.0031308, c * 12.92, 1.055 * c ** (1.0 / 2.4) - 0.055)


def srgb_to_oklab(rgb) -> np.ndarray:
    """sRGB (..., 3) in [0, 1] -> OKLab (..., 3)."""
    lms = srgb_to_linear(rgb) @ _LMS_FROM_LINEAR.T
    return np.cbrt(lms) @ _LAB_FROM_LMS.T


def oklab_to_srgb(lab) -> np.ndarray:
    """OKLab (..., 3) -> sRGB (..., 3) clipped to [0, 1]."""
    lms = (np.asarray(lab, dtype=np.float64) @ _LMS_FROM_LAB.T) ** 3
    return np.clip(linear_to_srgb(lms @ _LINEAR_FROM_LMS.T), 0.0, 1.0)


def oklab_to_oklch(lab: np.ndarray) -> tuple:
    L, a, b = lab
    return float(L), float(math.hypot(a, b)), float(math.atan2(b, a))


class ColorRamp:
    """
    Colour at normalised position t between ``start`` (t=0) and ``end`` (t=1).

    ``brighten`` lifts OKLab lightness by ``brighten * BRIGHTEN_STEP`` at the
    midpoint, fading to nothing at both ends, so the endpoints always come
    back unchanged.
    """

    def __init__(self, start, end, brighten: float = 0.0):
        self.start = parse_colour(start)
        self.end = parse_colour(end)
        self.brighten = float(brighten)

        L0, C0, h0 = oklab_to_oklch(srgb_to_oklab(self.start))
        L1, C1, h1 = oklab_to_oklch(srgb_to_oklab(self.end))
        if C0 < ACHROMATIC_CHROMA:
            h0 = h1
        if C1 < ACHROMATIC_CHROMA:
            h1 = h0
        dh = (h1 - h0 + math.pi) % (2.0 * math.pi) - math.pi
        self._lch0 = (L0, C0, h0)
        self._delta = (L1 - L0, C1 - C0, dh)

    def _lab_at(self, t: np.ndarray) -> np.ndarray:
        L0, C0, h0 = self._lch0
        dL, dC, dh = self._delta
        L = L0 + dL * t
        if self.brighten:
            L = L + self.brighten * BRIGHTEN_STEP * 4.0 * t * (1.0 - t)
        C = C0 + dC * t
        h = h0 + dh * t
        return np.stack([L, C * np.cos(h), C * np.sin(h)], axis=-1)

    def sample(self, ts) -> np.ndarray:
        """RGB float64 array (N, 3) for every position in ``ts``."""
        t = np.clip(np.atleast_1d(np.asarray(ts, dtype=np.float64)), 0.0, 1.0)
        rgb = oklab_to_srgb(self._lab_at(t))
        # Exact endpoints regardless of floating point round trips.
        rgb[t == 0.0] = self.start
        rgb[t == 1.0] = self.end
        return rgb

    def at(self, t: float) -> tuple:
        t = clamp01(float(t))
        if t == 0.0:
            return self.start
        if t == 1.0:
            return self.end
        r, g, b = oklab_to_srgb(self._lab_at(np.float64(t)))
        return float(r), float(g), float(b)

    def at_u8(self, t: float) -> tuple:
        return tuple(int(round(c * 255.0)) for c in self.at(t))

"""
render.py
=========
Builds a twisted, tapered multi-floor tower, previews it in a pyglet window
and exports it to OBJ (vertex colours) and/or GLB.

Edit the CONFIG block below to set the defaults, or override the common
ones on the command line:
    python -m twist_tower --floors 40 --sides 4 --no-viewer --export both
"""

import argparse
import os
import sys

from .builder import TowerMeshBuilder, check_extent
from .exporter import EmptyMeshError, write_mesh
from .params import ParameterError, ParameterSet

# ──────────────────────────────────────────────────────────────────────────────
# CONFIG  ← edit these values
# ──────────────────────────────────────────────────────────────────────────────

# Number of stacked slabs (>= 1).
FLOORS = 32
# Vertical distance between floor centres.  Set to None to derive the spacing
# from TOTAL_HEIGHT instead (1.5 when both are None).
FLOOR_SPACING = 1.5
TOTAL_HEIGHT = None
# Radius of an unscaled floor (world units).
BASE_RADIUS = 6.0
# Height of each slab.
SLAB_THICKNESS = 0.5
# Polygon sides per floor, clamped to 3..128.  3 and 4 get a face to camera.
FLOOR_SIDES = 6

# Twist range in degrees, bottom floor → top floor (any order).
TWIST_MIN = 0.0
TWIST_MAX = 260.0
# Radius multiplier range, bottom floor → top floor.
SCALE_MIN = 0.4
SCALE_MAX = 1.0

# Easing per ramp: "linear", "easeIn", "easeOut", "easeInOut" or "bezier".
TWIST_GRADIENT = "linear"
SCALE_GRADIENT = "easeInOut"
# Cubic-bezier handles used by any ramp set to "bezier" (clamped to 0..1).
BEZIER_P1 = (0.25, 0.1)
BEZIER_P2 = (0.75, 0.9)

# Floor colours, bottom → top.  Any Pillow colour string or RGB tuple.
COLOUR_START = "#54d2ff"
COLOUR_END = "#ff8ccf"

# Start the viewer spinning.
AUTO_ROTATE = True
# Open the pyglet viewer.  False = build + export immediately and exit.
SHOW_VIEWER = True

# ── Export ────────────────────────────────────────────────────────────────────
#   "obj"  – writes <OUT>.obj (v x y z r g b lines, Z up)
#   "glb"  – single binary glTF file with vertex colours (Y up)
#   "both" – both of the above
#   "none" – disable export
EXPORT = "obj"

# Output filename stem (no extension).
OUT = "parametric-tower"

# ──────────────────────────────────────────────────────────────────────────────


def params_from_config(args=None) -> ParameterSet:
    values = dict(
        floors=FLOORS,
        floor_spacing=FLOOR_SPACING,
        total_height=TOTAL_HEIGHT,
        base_radius=BASE_RADIUS,
        slab_thickness=SLAB_THICKNESS,
        floor_sides=FLOOR_SIDES,
        twist_min=TWIST_MIN,
        twist_max=TWIST_MAX,
        scale_min=SCALE_MIN,
        scale_max=SCALE_MAX,
        twist_gradient=TWIST_GRADIENT,
        scale_gradient=SCALE_GRADIENT,
        bezier=(BEZIER_P1, BEZIER_P2),
        colour_start=COLOUR_START,
        colour_end=COLOUR_END,
        auto_rotate=AUTO_ROTATE,
    )
    if args is not None:
        overrides = {
            "floors": args.floors,
            "floor_sides": args.sides,
            "base_radius": args.radius,
            "twist_min": args.twist_min,
            "twist_max": args.twist_max,
            "twist_gradient": args.twist_gradient,
            "scale_gradient": args.scale_gradient,
            "colour_start": args.colour_start,
            "colour_end": args.colour_end,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if args.total_height is not None:
            values["total_height"] = args.total_height
            values["floor_spacing"] = None
        elif args.spacing is not None:
            values["floor_spacing"] = args.spacing
    return ParameterSet(**values)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a twisted, tapered multi-floor tower mesh.")
    parser.add_argument("--floors", type=int, help="Number of floors.")
    parser.add_argument("--sides", type=int, help="Polygon sides per floor (3..128).")
    parser.add_argument("--spacing", type=float, help="Floor spacing.")
    parser.add_argument("--total-height", type=float, help="Total height; overrides --spacing.")
    parser.add_argument("--radius", type=float, help="Base radius.")
    parser.add_argument("--twist-min", type=float, help="Bottom twist in degrees.")
    parser.add_argument("--twist-max", type=float, help="Top twist in degrees.")
    parser.add_argument("--twist-gradient", help="linear | easeIn | easeOut | easeInOut | bezier")
    parser.add_argument("--scale-gradient", help="linear | easeIn | easeOut | easeInOut | bezier")
    parser.add_argument("--colour-start", help="Bottom colour, e.g. '#54d2ff'.")
    parser.add_argument("--colour-end", help="Top colour, e.g. '#ff8ccf'.")
    parser.add_argument("--export", choices=("obj", "glb", "both", "none"), default=EXPORT)
    parser.add_argument("--out", default=OUT, help="Output filename stem.")
    parser.add_argument("--no-viewer", action="store_true", help="Export straight away, no window.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        params = params_from_config(args)
    except ParameterError as exc:
        sys.exit(f"[error] {exc}")

    print("=" * 60)
    print("  twist_tower")
    print("=" * 60)
    print(f"  floors          : {params.floors}  (spacing={params.spacing:.3f}  height={params.height:.3f})")
    print(f"  radius          : {params.base_radius}  (thickness={params.slab_thickness})")
    print(f"  sides           : {params.floor_sides}")
    print(f"  twist           : {params.twist_min}° → {params.twist_max}°  ({params.twist_gradient.value})")
    print(f"  scale           : {params.scale_min} → {params.scale_max}  ({params.scale_gradient.value})")
    print(f"  bezier          : p1={params.bezier.p1}  p2={params.bezier.p2}")
    print(f"  colours         : {params.colour_start} → {params.colour_end}")
    print(f"  auto_rotate     : {params.auto_rotate}")
    print(f"  export          : {args.export}")
    print(f"  output stem     : {os.path.abspath(args.out)}")
    print("=" * 60)

    builder = TowerMeshBuilder()
    try:
        check_extent(params)
    except ParameterError as exc:
        sys.exit(f"[error] {exc}")

    if SHOW_VIEWER and not args.no_viewer:
        from .viewer import run_viewer
        run_viewer(params, export_fmt=args.export, out_stem=args.out, builder=builder)
        return 0

    mesh = builder.build(params, with_normals=False)
    try:
        write_mesh(mesh, args.out, args.export)
    except EmptyMeshError as exc:
        sys.exit(f"[error] {exc}")
    finally:
        mesh.release()
    return 0


if __name__ == "__main__":
    sys.exit(main())

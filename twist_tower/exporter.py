"""
exporter.py
===========
Serialises a GeneratedMesh to Wavefront OBJ text (with per-vertex colours)
or to binary glTF.

OBJ line grammar written here:

    # header comments
    v  x y z r g b        one per vertex, 6 decimals
    vn x y z              one per vertex, 6 decimals
    f  a//a b//b c//c     1-indexed position//normal pairs per triangle

The builder works Y-up; the OBJ is written Z-up by the fixed remap
(x, y, z) -> (x, z, -y), so the tower stands upright in Blender & co.
"""

import os

import numpy as np

from .builder import compute_normals

# Rows map builder axes to file axes: (x, y, z) -> (x, z, -y).  A proper
# rotation (det = +1), so triangle winding is preserved.
AXIS_REMAP = np.array([
    [1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0],
    [0.0, -1.0, 0.0],
])


class EmptyMeshError(ValueError):
    """Raised when asked to export a mesh without vertices."""


def _check_not_empty(mesh):
    if mesh is None or mesh.vertex_count == 0:
        raise EmptyMeshError("[export] Mesh has no vertices – nothing to export.")


class MeshExporter:
    """
    include_normals=False writes neither ``vn`` lines nor normal references
    (faces become ``f a b c``).
    """

    def __init__(self, include_normals: bool = True, title: str = "Twisted tower OBJ export"):
        self.include_normals = include_normals
        self.title = title

    def export(self, mesh) -> str:
        _check_not_empty(mesh)

        verts = np.asarray(mesh.positions, dtype=np.float64) @ AXIS_REMAP.T
        cols = np.asarray(mesh.colours, dtype=np.float64)
        tris = np.asarray(mesh.indices, dtype=np.int64).reshape(-1, 3) + 1

        lines = [
            f"# {self.title}",
            "# Axis swapped: (x, y, z) -> (x, z, -y) so the tower's +Y up becomes +Z up",
            "# Columns: v x y z r g b",
            f"# {len(verts)} vertices  |  {len(tris)} triangles",
        ]
        for v, c in zip(verts, cols):
            lines.append(f"v {v[0]:.6f} {v[1]:.6f} {v[2]:.6f} {c[0]:.6f} {c[1]:.6f} {c[2]:.6f}")

        if self.include_normals:
            # Never trust buffers from the live build; derive from geometry.
            normals = compute_normals(mesh.positions, mesh.indices, len(verts))
            normals = normals.astype(np.float64) @ AXIS_REMAP.T
            for n in normals:
                lines.append(f"vn {n[0]:.6f} {n[1]:.6f} {n[2]:.6f}")
            for a, b, c in tris:
                lines.append(f"f {a}//{a} {b}//{b} {c}//{c}")
        else:
            for a, b, c in tris:
                lines.append(f"f {a} {b} {c}")

        return "\n".join(lines) + "\n"

    def write_obj(self, mesh, path: str) -> str:
        """Write the OBJ text to ``path`` (text is complete before the file opens)."""
        text = self.export(mesh)
        print(f"[export] Writing {path} …")
        with open(path, "w") as f:
            f.write(text)
        print(f"[export] Done → {path}  ({mesh.vertex_count:,} vertices, {mesh.triangle_count:,} triangles)")
        return path

    def write_glb(self, mesh, path: str) -> str:
        """Export as GLB using trimesh; glTF is Y-up so no axis remap is applied."""
        _check_not_empty(mesh)
        import trimesh

        normals = compute_normals(mesh.positions, mesh.indices, mesh.vertex_count)
        rgba = np.concatenate([
            np.clip(np.round(np.asarray(mesh.colours) * 255.0), 0, 255),
            np.full((mesh.vertex_count, 1), 255.0),
        ], axis=1).astype(np.uint8)

        tm = trimesh.Trimesh(
            vertices=np.asarray(mesh.positions, dtype=np.float64),
            faces=np.asarray(mesh.indices, dtype=np.int64),
            vertex_normals=normals,
            vertex_colors=rgba,
            process=False,
        )
        print(f"[export] Writing {path} …")
        tm.export(path, file_type="glb")
        print(f"[export] Done → {path}")
        return path


def export_obj(mesh, include_normals: bool = True) -> str:
    return MeshExporter(include_normals=include_normals).export(mesh)


def write_mesh(mesh, stem: str, fmt: str = "obj") -> list:
    """
    Write ``<stem>.obj`` / ``<stem>.glb`` depending on ``fmt``
    ("obj", "glb", "both" or "none").  Returns the written paths.
    """
    exporter = MeshExporter()
    written = []
    if fmt in ("obj", "both"):
        written.append(exporter.write_obj(mesh, stem + ".obj"))
    if fmt in ("glb", "both"):
        written.append(exporter.write_glb(mesh, stem + ".glb"))
    if fmt == "none":
        print("[export] Export is disabled (EXPORT = 'none').")
    elif not written:
        raise ValueError(f"[export] Unknown export format: {fmt!r}")
    return [os.path.abspath(p) for p in written]


def parse_obj_counts(text: str) -> tuple:
    """(vertex_count, triangle_count) of OBJ text; polygons are fan-triangulated."""
    n_verts = 0
    n_tris = 0
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        if parts[0] == "v":
            n_verts += 1
        elif parts[0] == "f":
            n_tris += max(0, len(parts) - 3)
    return n_verts, n_tris

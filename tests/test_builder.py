import math

import numpy as np
import pytest

from twist_tower.builder import MIN_RADIUS, TowerMeshBuilder, build_tower, check_extent, compute_normals
from twist_tower.params import ParameterError, ParameterSet
from twist_tower.profile import BaseProfileCache, index_count, vertex_count


def floor_slices(mesh):
    per = len(mesh.positions) // mesh.floors
    return [slice(i * per, (i + 1) * per) for i in range(mesh.floors)]


@pytest.mark.parametrize("floors", [1, 2, 13, 500])
@pytest.mark.parametrize("sides", [3, 4, 7, 64, 128])
def test_buffer_sizes(floors, sides):
    mesh = build_tower(ParameterSet(floors=floors, floor_sides=sides))
    assert mesh.vertex_count == floors * vertex_count(sides)
    assert mesh.index_count == floors * index_count(sides)
    assert mesh.normals.shape == mesh.positions.shape == mesh.colours.shape
    assert mesh.indices.max() < mesh.vertex_count


def test_single_floor_is_centred_and_untwisted():
    p = ParameterSet(floors=1, floor_sides=4, base_radius=2.0, slab_thickness=0.5,
                     twist_min=0.0, twist_max=180.0, scale_min=0.5, scale_max=3.0)
    mesh = build_tower(p)
    assert mesh.vertex_count == vertex_count(4)
    assert np.all(np.isfinite(mesh.positions))
    assert np.all(np.isfinite(mesh.normals))
    assert np.all(np.isfinite(mesh.colours))
    assert mesh.positions[:, 1].min() == pytest.approx(-0.25)
    assert mesh.positions[:, 1].max() == pytest.approx(0.25)

    expected = BaseProfileCache().profile(4).positions * np.array([1.0, 0.5, 1.0])
    expected[:, [0, 2]] *= 2.0 * 0.5
    assert np.allclose(mesh.positions, expected, atol=1e-6)
    assert np.allclose(mesh.colours, p.colour_start, atol=1e-6)


def test_build_is_deterministic():
    p = ParameterSet(floors=17, floor_sides=9, twist_gradient="bezier", scale_gradient="easeOut")
    a = TowerMeshBuilder().build(p)
    b = TowerMeshBuilder().build(p)
    c = build_tower(p)
    for mesh in (b, c):
        assert a.positions.tobytes() == mesh.positions.tobytes()
        assert a.normals.tobytes() == mesh.normals.tobytes()
        assert a.colours.tobytes() == mesh.colours.tobytes()
        assert a.indices.tobytes() == mesh.indices.tobytes()


@pytest.mark.parametrize("scale_min", [0.0, -2.0, 1e-9])
def test_degenerate_scale_keeps_radius_positive(scale_min):
    p = ParameterSet(floors=6, floor_sides=5, scale_min=scale_min, scale_max=1.0)
    mesh = build_tower(p)
    assert np.all(np.isfinite(mesh.positions))
    assert np.all(np.isfinite(mesh.normals))
    for sl in floor_slices(mesh):
        radial = np.hypot(mesh.positions[sl, 0], mesh.positions[sl, 2])
        assert radial.max() >= MIN_RADIUS * (1 - 1e-5)
    bottom = np.hypot(mesh.positions[floor_slices(mesh)[0], 0], mesh.positions[floor_slices(mesh)[0], 2])
    assert bottom.max() == pytest.approx(MIN_RADIUS, rel=1e-5)


@pytest.mark.parametrize("changes", [
    {"scale_max": 1e300},
    {"scale_min": -1e300},
    {"base_radius": 1e39},
    {"floor_spacing": 1e39},
    {"floor_spacing": None, "total_height": 1e300},
    {"slab_thickness": 1e39},
])
def test_oversized_tower_is_rejected(changes):
    p = ParameterSet(floors=3, **changes)
    with pytest.raises(ParameterError):
        check_extent(p)
    with pytest.raises(ParameterError):
        build_tower(p)


def test_large_but_representable_tower_builds():
    mesh = build_tower(ParameterSet(floors=3, floor_sides=4, scale_max=1e30))
    assert np.all(np.isfinite(mesh.positions))


def test_floors_are_stacked_and_centred():
    mesh = build_tower(ParameterSet(floors=5, floor_spacing=2.0))
    centres = [mesh.positions[sl, 1].mean() for sl in floor_slices(mesh)]
    assert np.allclose(centres, [-4.0, -2.0, 0.0, 2.0, 4.0], atol=1e-5)


def test_spacing_from_total_height():
    mesh = build_tower(ParameterSet(floors=5, floor_spacing=None, total_height=10.0))
    centres = [mesh.positions[sl, 1].mean() for sl in floor_slices(mesh)]
    assert np.allclose(centres, [-5.0, -2.5, 0.0, 2.5, 5.0], atol=1e-5)


def test_top_floor_is_twisted_by_twist_max():
    p = ParameterSet(floors=2, floor_sides=4, floor_spacing=3.0, twist_min=0.0, twist_max=90.0,
                     scale_min=1.0, scale_max=1.0)
    mesh = build_tower(p)
    bottom, top = (mesh.positions[sl].astype(np.float64) for sl in floor_slices(mesh))
    c, s = math.cos(math.radians(90.0)), math.sin(math.radians(90.0))
    x, z = bottom[:, 0], bottom[:, 2]
    assert np.allclose(top[:, 0], c * x + s * z, atol=1e-5)
    assert np.allclose(top[:, 2], -s * x + c * z, atol=1e-5)
    assert np.allclose(top[:, 1], bottom[:, 1] + 3.0, atol=1e-5)


def test_twist_follows_its_gradient():
    # Eased twist at the middle floor: easeIn(0.5) = 0.25 of the range.
    p = ParameterSet(floors=3, floor_sides=4, twist_min=0.0, twist_max=120.0,
                     twist_gradient="easeIn", scale_min=1.0, scale_max=1.0)
    mesh = build_tower(p)
    bottom, middle, _ = (mesh.positions[sl].astype(np.float64) for sl in floor_slices(mesh))
    angle = math.radians(30.0)
    c, s = math.cos(angle), math.sin(angle)
    assert np.allclose(middle[:, 0], c * bottom[:, 0] + s * bottom[:, 2], atol=1e-4)


def test_scale_follows_its_gradient():
    p = ParameterSet(floors=3, floor_sides=8, base_radius=2.0, scale_min=1.0, scale_max=3.0,
                     scale_gradient="easeOut", twist_max=0.0)
    mesh = build_tower(p)
    radii = [np.hypot(mesh.positions[sl, 0], mesh.positions[sl, 2]).max() for sl in floor_slices(mesh)]
    # easeOut(0.5) = 0.75 -> scale 2.5
    assert np.allclose(radii, [2.0, 5.0, 6.0], atol=1e-5)


def test_twist_range_may_be_reversed():
    mesh = build_tower(ParameterSet(floors=4, twist_min=90.0, twist_max=-270.0))
    assert np.all(np.isfinite(mesh.positions))


def test_normals_are_unit_and_outward():
    mesh = build_tower(ParameterSet(floors=7, floor_sides=5, twist_max=200.0, scale_min=0.3))
    assert np.allclose(np.linalg.norm(mesh.normals, axis=1), 1.0, atol=1e-5)
    for sl in floor_slices(mesh):
        rel = mesh.positions[sl] - mesh.positions[sl].mean(axis=0)
        assert np.all(np.einsum("ij,ij->i", rel, mesh.normals[sl]) > 0)


def test_normals_agree_with_geometry():
    mesh = build_tower(ParameterSet(floors=4, floor_sides=6, twist_max=77.0, scale_min=0.2, slab_thickness=0.3))
    recomputed = compute_normals(mesh.positions, mesh.indices)
    assert np.allclose(mesh.normals, recomputed, atol=1e-4)


def test_each_floor_has_one_colour_banded_bottom_to_top():
    p = ParameterSet(floors=6, colour_start="#54d2ff", colour_end="#ff8ccf")
    mesh = build_tower(p)
    slices = floor_slices(mesh)
    for sl in slices:
        assert np.all(mesh.colours[sl] == mesh.colours[sl][0])
    assert np.allclose(mesh.colours[slices[0]][0], p.colour_start, atol=1e-6)
    assert np.allclose(mesh.colours[slices[-1]][0], p.colour_end, atol=1e-6)


def test_floors_do_not_share_vertices():
    mesh = build_tower(ParameterSet(floors=3, floor_sides=3))
    per_floor = vertex_count(3)
    tris_per_floor = len(mesh.indices) // 3
    for i in range(3):
        block = mesh.indices[i * tris_per_floor:(i + 1) * tris_per_floor]
        assert block.min() >= i * per_floor
        assert block.max() < (i + 1) * per_floor


def test_without_normals():
    mesh = build_tower(ParameterSet(floors=3), with_normals=False)
    assert mesh.normals is None
    assert mesh.vertex_count == 3 * vertex_count(6)


def test_builder_reuses_its_cache():
    cache = BaseProfileCache()
    builder = TowerMeshBuilder(cache)
    builder.build(ParameterSet(floor_sides=5))
    builder.build(ParameterSet(floor_sides=5, floors=3))
    assert builder.cache is cache
    assert len(cache) == 1


def test_parameters_are_left_untouched():
    p = ParameterSet(floors=4, floor_sides=4)
    before = p.as_dict()
    build_tower(p)
    assert p.as_dict() == before


def test_release_empties_the_mesh():
    mesh = build_tower(ParameterSet(floors=2))
    mesh.release()
    assert mesh.released
    assert mesh.vertex_count == 0
    assert mesh.index_count == 0
    assert mesh.normals is None

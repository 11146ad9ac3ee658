import numpy as np
import pytest

from twist_tower.profile import BaseProfileCache, build_base_profile, index_count, vertex_count


@pytest.mark.parametrize("sides", [3, 4, 5, 6, 17, 64, 128])
def test_profile_buffer_sizes(sides):
    p = build_base_profile(sides)
    assert p.vertex_count == vertex_count(sides) == len(p.normals)
    assert p.index_count == index_count(sides)
    assert p.positions.dtype == np.float32
    assert p.indices.dtype == np.uint32
    assert p.indices.max() < p.vertex_count


@pytest.mark.parametrize("sides", [3, 4, 8, 128])
def test_profile_is_unit_sized(sides):
    p = build_base_profile(sides)
    radial = np.hypot(p.positions[:, 0], p.positions[:, 2])
    assert radial.max() == pytest.approx(1.0, abs=1e-6)
    assert p.positions[:, 1].min() == pytest.approx(-0.5)
    assert p.positions[:, 1].max() == pytest.approx(0.5)
    assert np.allclose(np.linalg.norm(p.normals, axis=1), 1.0, atol=1e-6)


@pytest.mark.parametrize("sides", [3, 4, 6, 31])
def test_profile_faces_point_outward(sides):
    p = build_base_profile(sides)
    tris = p.indices.astype(np.int64)
    centroids = p.positions[tris].mean(axis=1)
    e1 = p.positions[tris[:, 1]] - p.positions[tris[:, 0]]
    e2 = p.positions[tris[:, 2]] - p.positions[tris[:, 0]]
    winding = np.cross(e1, e2)
    assert np.all(np.einsum("ij,ij->i", winding, centroids) > 0)
    assert np.all(np.einsum("ij,ij->i", p.normals[tris[:, 0]], centroids) > 0)


@pytest.mark.parametrize("sides", [3, 4])
def test_triangle_and_square_show_a_face_to_the_camera(sides):
    p = build_base_profile(sides)
    assert np.any(np.all(np.isclose(p.normals, [0.0, 0.0, 1.0], atol=1e-6), axis=1))


def test_other_profiles_keep_a_corner_on_plus_z():
    p = build_base_profile(6)
    assert not np.any(np.all(np.isclose(p.normals, [0.0, 0.0, 1.0], atol=1e-6), axis=1))
    assert np.any(np.all(np.isclose(p.positions, [0.0, 0.5, 1.0], atol=1e-6), axis=1))


def test_cache_clamps_and_rounds_side_count():
    cache = BaseProfileCache()
    assert cache.profile(1).sides == 3
    assert cache.profile(500).sides == 128
    assert cache.profile(4.4).sides == 4
    assert len(cache) == 3
    assert 4 in cache
    assert 5 not in cache


def test_cache_hands_out_independent_copies():
    cache = BaseProfileCache()
    first = cache.profile(6)
    first.positions[:] = 99.0
    first.indices[:] = 0
    second = cache.profile(6)
    assert np.abs(second.positions).max() <= 1.0
    assert second.indices.max() > 0
    assert len(cache) == 1


def test_cache_clear():
    cache = BaseProfileCache()
    cache.profile(5)
    cache.clear()
    assert len(cache) == 0

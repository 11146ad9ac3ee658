import pytest

from twist_tower import render
from twist_tower.exporter import parse_obj_counts
from twist_tower.profile import index_count, vertex_count


def test_main_exports_without_viewer(tmp_path):
    stem = tmp_path / "tower"
    rc = render.main(["--no-viewer", "--export", "obj", "--out", str(stem),
                      "--floors", "5", "--sides", "4", "--twist-gradient", "easeInOut"])
    assert rc == 0
    text = (tmp_path / "tower.obj").read_text()
    assert parse_obj_counts(text) == (5 * vertex_count(4), 5 * index_count(4) // 3)


def test_total_height_overrides_spacing():
    args = render.build_parser().parse_args(["--floors", "3", "--total-height", "12"])
    params = render.params_from_config(args)
    assert params.floor_spacing is None
    assert params.spacing == pytest.approx(6.0)


def test_config_defaults_build_valid_params():
    params = render.params_from_config()
    assert params.floors == render.FLOORS
    assert params.auto_rotate == render.AUTO_ROTATE


def test_invalid_parameters_exit_with_error():
    with pytest.raises(SystemExit) as exc:
        render.main(["--no-viewer", "--radius", "-1"])
    assert "[error]" in str(exc.value.code)


def test_oversized_tower_exits_with_error(tmp_path):
    stem = tmp_path / "tower"
    with pytest.raises(SystemExit) as exc:
        render.main(["--no-viewer", "--out", str(stem), "--radius", "1e39"])
    assert "float32" in str(exc.value.code)
    assert not (tmp_path / "tower.obj").exists()

"""Tests for postcompose manifest loader."""

import tempfile

import pytest
import yaml

from postcompose.layout import AspectRatio, Template
from postcompose.manifest import build_state, load_manifest, validate_paths
from postcompose.state import MediaRef


def _write_manifest(content: dict) -> str:
    """Write a manifest dict to a temp YAML file, return path."""
    f = tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    yaml.dump(content, f)
    f.close()
    return f.name


def _minimal_manifest(**overrides):
    """Return a minimal valid 4-grid manifest with one slot."""
    m = {
        "template": "4-grid",
        "slots": [{"path": "/tmp/fake.jpg"}],
    }
    m.update(overrides)
    return m


def _fake_probe(path):
    return MediaRef(key=path, width=1920, height=1080)


class TestLoadManifest:
    def test_defaults(self):
        config = load_manifest(_write_manifest(_minimal_manifest()))
        assert config["template"] is Template.FOUR_GRID
        assert config["aspect_ratio"] is AspectRatio.SQUARE
        assert config["font"] == {"family": "Arial", "size": 60}
        assert config["header"] == ""
        assert config["caption"] == ""
        assert config["audio"] is None
        assert config["slots"] == [
            {"path": "/tmp/fake.jpg", "label": "", "zoom": 1.0, "offset": (0.0, 0.0)},
        ]

    def test_full_manifest(self):
        manifest = _minimal_manifest(
            template="header-4-images",
            aspect_ratio="4:5",
            font={"family": "Georgia", "size": 48},
            header="Top picks",
            paths={"media": "/data/post"},
            audio="${media}/music.mp3",
            slots=[
                {"path": "${media}/a.jpg", "label": "Before", "zoom": 1.4, "offset": [12, -30]},
                None,
                {"path": "${media}/c.mp4"},
            ],
        )
        config = load_manifest(_write_manifest(manifest))
        assert config["template"] is Template.HEADER_4_IMAGES
        assert config["aspect_ratio"] is AspectRatio.PORTRAIT_4X5
        assert config["font"] == {"family": "Georgia", "size": 48}
        assert config["audio"] == "/data/post/music.mp3"
        assert config["slots"][0] == {
            "path": "/data/post/a.jpg", "label": "Before", "zoom": 1.4, "offset": (12.0, -30.0),
        }
        assert config["slots"][1] is None
        assert config["slots"][2]["path"] == "/data/post/c.mp4"

    def test_unknown_template_raises(self):
        path = _write_manifest(_minimal_manifest(template="3-grid"))
        with pytest.raises(ValueError, match="Unknown template"):
            load_manifest(path)

    def test_unknown_aspect_ratio_raises(self):
        path = _write_manifest(_minimal_manifest(aspect_ratio="16:9"))
        with pytest.raises(ValueError, match="Unknown aspect_ratio"):
            load_manifest(path)

    def test_unquoted_aspect_ratio_explained(self, tmp_path):
        path = tmp_path / "post.yaml"
        path.write_text("template: 4-grid\naspect_ratio: 4:5\n")
        with pytest.raises(ValueError, match="quote it"):
            load_manifest(path)

    def test_unknown_path_variable_raises(self):
        path = _write_manifest(_minimal_manifest(slots=[{"path": "${nope}/a.jpg"}]))
        with pytest.raises(ValueError, match="Unknown path variable"):
            load_manifest(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_manifest(tmp_path / "absent.yaml")


class TestValidateFont:
    def test_non_positive_size_raises(self):
        path = _write_manifest(_minimal_manifest(font={"size": 0}))
        with pytest.raises(ValueError, match="font: size"):
            load_manifest(path)

    def test_empty_family_raises(self):
        path = _write_manifest(_minimal_manifest(font={"family": ""}))
        with pytest.raises(ValueError, match="family"):
            load_manifest(path)


class TestValidateSlots:
    def test_too_many_slots_raises(self):
        manifest = _minimal_manifest(
            template="header-single",
            slots=[{"path": "/tmp/a.jpg"}, {"path": "/tmp/b.jpg"}],
        )
        with pytest.raises(ValueError, match="holds 1 slot"):
            load_manifest(_write_manifest(manifest))

    def test_four_slots_accepted(self):
        manifest = _minimal_manifest(slots=[{"path": f"/tmp/{i}.png"} for i in range(4)])
        assert len(load_manifest(_write_manifest(manifest))["slots"]) == 4

    def test_missing_path_raises(self):
        path = _write_manifest(_minimal_manifest(slots=[{"label": "x"}]))
        with pytest.raises(ValueError, match="Slot 0 \\(4-grid\\): missing required field 'path'"):
            load_manifest(path)

    def test_unsupported_suffix_raises(self):
        path = _write_manifest(_minimal_manifest(slots=[{"path": "/tmp/a.txt"}]))
        with pytest.raises(ValueError, match="unsupported media type"):
            load_manifest(path)

    @pytest.mark.parametrize("zoom", [0.5, 3.5])
    def test_zoom_out_of_range_raises(self, zoom):
        path = _write_manifest(_minimal_manifest(slots=[{"path": "/tmp/a.jpg", "zoom": zoom}]))
        with pytest.raises(ValueError, match="zoom must be within"):
            load_manifest(path)

    def test_zoom_bounds_accepted(self):
        slots = [{"path": "/tmp/a.jpg", "zoom": 1}, {"path": "/tmp/b.jpg", "zoom": 3}]
        config = load_manifest(_write_manifest(_minimal_manifest(slots=slots)))
        assert [s["zoom"] for s in config["slots"]] == [1.0, 3.0]

    @pytest.mark.parametrize("offset", [[1], [1, 2, 3], ["a", 2], 5])
    def test_bad_offset_raises(self, offset):
        path = _write_manifest(
            _minimal_manifest(slots=[{"path": "/tmp/a.jpg", "offset": offset}])
        )
        with pytest.raises(ValueError, match="offset"):
            load_manifest(path)

    def test_non_string_label_raises(self):
        path = _write_manifest(_minimal_manifest(slots=[{"path": "/tmp/a.jpg", "label": 3}]))
        with pytest.raises(ValueError, match="label"):
            load_manifest(path)


class TestValidatePaths:
    def test_existing_paths_pass(self, source_image):
        config = load_manifest(_write_manifest(_minimal_manifest(
            slots=[{"path": str(source_image)}],
        )))
        validate_paths(config)

    def test_reports_all_missing(self, tmp_path):
        config = load_manifest(_write_manifest(_minimal_manifest(
            audio=str(tmp_path / "music.mp3"),
            slots=[{"path": str(tmp_path / "a.jpg")}, None, {"path": str(tmp_path / "c.png")}],
        )))
        with pytest.raises(FileNotFoundError, match="Missing 3 file") as exc_info:
            validate_paths(config)
        assert "a.jpg" in str(exc_info.value)
        assert "music.mp3" in str(exc_info.value)


class TestBuildState:
    def test_applies_slots_and_text(self):
        manifest = _minimal_manifest(
            template="header-4-images",
            header="Top picks",
            font={"family": "Georgia", "size": 48},
            slots=[
                None,
                {"path": "/tmp/b.jpg", "label": "After", "zoom": 2.0, "offset": [10, 20]},
            ],
        )
        state = build_state(load_manifest(_write_manifest(manifest)), probe=_fake_probe)
        assert state.template is Template.HEADER_4_IMAGES
        assert state.header.text == "Top picks"
        assert state.font.family == "Georgia"
        assert state.slots[0].is_empty
        slot = state.slots[1]
        assert slot.media.key == "/tmp/b.jpg"
        assert slot.label == "After"
        assert slot.transform.zoom == 2.0
        assert (slot.transform.offset_x, slot.transform.offset_y) == (10.0, 20.0)

    def test_offsets_clamped(self):
        manifest = _minimal_manifest(slots=[{"path": "/tmp/a.jpg", "offset": [1000, 1000]}])
        state = build_state(load_manifest(_write_manifest(manifest)), probe=_fake_probe)
        t = state.slots[0].transform
        assert t.offset_x == pytest.approx(210)
        assert t.offset_y == pytest.approx(0)

    def test_probes_real_files(self, source_image):
        manifest = _minimal_manifest(caption="Hi", slots=[{"path": str(source_image)}])
        state = build_state(load_manifest(_write_manifest(manifest)))
        assert state.caption == "Hi"
        assert (state.slots[0].media.width, state.slots[0].media.height) == (400, 300)

"""
Tests for cascade parsing, loading and serialization.
"""

import json

import pytest

from cropengine.cascade import Cascade, CascadeFormatError, parse_cascade
from cropengine.config import DetectorConfig
from cropengine.model_loader import bundled_cascade_dir, load_cascade
from cropengine.serializer import convert_cascade

RAW_CASCADE = {
    "size": [24, 24],
    "stages": [
        {
            "threshold": -1.0,
            "features": [
                {
                    "threshold": 0.5,
                    "left_val": 1.0,
                    "right_val": -1.0,
                    "rectangles": [[6, 4, 12, 9, -1.0], [6, 7, 12, 3, 3.0]],
                }
            ],
        }
    ],
}

LEGACY_XML = """<?xml version="1.0"?>
<opencv_storage>
<haarcascade_test type_id="opencv-haar-classifier">
  <size>24 24</size>
  <stages>
    <_>
      <!-- stage 0 -->
      <trees>
        <_>
          <!-- tree 0 -->
          <_>
            <!-- root node -->
            <feature>
              <rects>
                <_>6 4 12 9 -1.</_>
                <_>6 7 12 3 3.</_></rects>
              <tilted>0</tilted></feature>
            <threshold>0.5</threshold>
            <left_val>1.</left_val>
            <right_val>-1.</right_val></_></_></trees>
      <stage_threshold>-1.</stage_threshold>
      <parent>-1</parent>
      <next>-1</next></_></stages></haarcascade_test>
</opencv_storage>
"""

CURRENT_XML = """<?xml version="1.0"?>
<opencv_storage>
<cascade type_id="opencv-cascade-classifier">
  <stageType>BOOST</stageType>
  <featureType>HAAR</featureType>
  <height>24</height>
  <width>24</width>
  <stageNum>1</stageNum>
  <stages>
    <_>
      <maxWeakCount>1</maxWeakCount>
      <stageThreshold>-1.</stageThreshold>
      <weakClassifiers>
        <_>
          <internalNodes>
            0 -1 0 0.5</internalNodes>
          <leafValues>
            1. -1.</leafValues></_></weakClassifiers></_></stages>
  <features>
    <_>
      <rects>
        <_>
          6 4 12 9 -1.</_>
        <_>
          6 7 12 3 3.</_></rects></_></features>
</cascade>
</opencv_storage>
"""


def test_parse_cascade():
    """Test building the typed cascade from plain data."""
    cascade = parse_cascade(RAW_CASCADE)

    assert isinstance(cascade, Cascade)
    assert (cascade.base_width, cascade.base_height) == (24, 24)
    assert len(cascade.stages) == 1
    feature = cascade.stages[0].features[0]
    assert feature.left_value == 1.0
    assert feature.right_value == -1.0
    assert feature.rectangles[1].weight == 3.0
    assert cascade.feature_count == 1


def test_parse_cascade_malformed():
    """Malformed data raises CascadeFormatError (a ValueError)."""
    with pytest.raises(CascadeFormatError, match="size"):
        parse_cascade({"stages": []})

    bad_rect = json.loads(json.dumps(RAW_CASCADE))
    bad_rect["stages"][0]["features"][0]["rectangles"] = [[1, 2, 3, 4]]
    with pytest.raises(CascadeFormatError, match="weight"):
        parse_cascade(bad_rect)

    missing = json.loads(json.dumps(RAW_CASCADE))
    del missing["stages"][0]["features"][0]["left_val"]
    with pytest.raises(ValueError, match="left_val"):
        parse_cascade(missing)


def test_load_json_and_yaml(tmp_path):
    """Both plain-data formats load to the same cascade."""
    json_path = tmp_path / "cascade.json"
    json_path.write_text(json.dumps(RAW_CASCADE), encoding="utf-8")

    yaml_path = tmp_path / "cascade.yaml"
    yaml_path.write_text(
        "size: [24, 24]\n"
        "stages:\n"
        "  - threshold: -1.0\n"
        "    features:\n"
        "      - threshold: 0.5\n"
        "        left_val: 1.0\n"
        "        right_val: -1.0\n"
        "        rectangles:\n"
        "          - [6, 4, 12, 9, -1.0]\n"
        "          - [6, 7, 12, 3, 3.0]\n",
        encoding="utf-8",
    )

    assert load_cascade(json_path) == load_cascade(str(yaml_path))


def test_load_xml_layouts(tmp_path):
    """Legacy and current OpenCV XML layouts both parse."""
    legacy = tmp_path / "legacy.xml"
    legacy.write_text(LEGACY_XML, encoding="utf-8")
    current = tmp_path / "current.xml"
    current.write_text(CURRENT_XML, encoding="utf-8")

    expected = parse_cascade(RAW_CASCADE)
    assert load_cascade(legacy) == expected
    assert load_cascade(current) == expected


def test_load_xml_rejects_tilted(tmp_path):
    """Tilted features are not supported."""
    path = tmp_path / "tilted.xml"
    path.write_text(LEGACY_XML.replace("<tilted>0</tilted>", "<tilted>1</tilted>"), encoding="utf-8")

    with pytest.raises(CascadeFormatError, match="Tilted"):
        load_cascade(path)


def test_load_errors(tmp_path):
    """Missing files and unknown formats fail with actionable errors."""
    with pytest.raises(FileNotFoundError):
        load_cascade(tmp_path / "missing.json")

    unknown = tmp_path / "cascade.txt"
    unknown.write_text("{}", encoding="utf-8")
    with pytest.raises(CascadeFormatError, match="extension"):
        load_cascade(unknown)

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(CascadeFormatError):
        load_cascade(broken)


def test_convert_cascade(tmp_path):
    """XML converts once to JSON and loads back unchanged."""
    source = tmp_path / "legacy.xml"
    source.write_text(LEGACY_XML, encoding="utf-8")
    target = tmp_path / "out" / "cascade.json"

    written = convert_cascade(source, target)

    assert target.is_file()
    assert load_cascade(target) == written


def test_default_cascades_are_bundled():
    """The cascades named by the default config ship with the installed OpenCV."""
    config = DetectorConfig()
    bundled = bundled_cascade_dir()

    assert bundled is not None
    assert (bundled / config.frontal_cascade_path).is_file()
    assert (bundled / config.profile_cascade_path).is_file()


def test_load_bundled_frontal_cascade():
    """The frontal face cascade shipped with OpenCV resolves by bare name."""
    cascade = load_cascade("haarcascade_frontalface_default.xml")

    assert (cascade.base_width, cascade.base_height) == (24, 24)
    assert len(cascade.stages) > 0

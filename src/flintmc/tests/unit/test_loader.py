import json

import pytest

from conftest import EXAMPLE_TESTS_DIR
from flintmc.core.errors import TestSpecError
from flintmc.core.loader import (
    discover_test_files,
    filter_tests,
    load_test_file,
    load_tests,
    parse_action,
    parse_test,
)
from flintmc.core.test_spec import (
    Assert,
    AssertState,
    BlockCheck,
    BlockPlacement,
    Fill,
    Place,
    PlaceEach,
    Remove,
)


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_parse_each_action_kind():
    assert parse_action({"do": "place", "pos": [1, 2, 3], "block": "stone"}) == Place(
        (1, 2, 3), "stone"
    )
    assert parse_action(
        {"do": "place_each", "blocks": [{"pos": [0, 0, 0], "block": "glass"}]}
    ) == PlaceEach((BlockPlacement((0, 0, 0), "glass"),))
    assert parse_action(
        {"do": "fill", "region": [[0, 0, 0], [1, 1, 1]], "with": "dirt"}
    ) == Fill(((0, 0, 0), (1, 1, 1)), "dirt")
    assert parse_action({"do": "remove", "pos": [4, 5, 6]}) == Remove((4, 5, 6))
    assert parse_action(
        {"do": "assert", "checks": [{"pos": [0, 0, 0], "is": "air"}]}
    ) == Assert((BlockCheck((0, 0, 0), "air"),))
    assert parse_action(
        {"do": "assert_state", "pos": [0, 0, 0], "state": "lit", "values": ["true"]}
    ) == AssertState((0, 0, 0), "lit", ("true",))


@pytest.mark.parametrize(
    "data, message",
    [
        ({"do": "explode"}, "unknown action"),
        ({"do": "place", "pos": [1, 2], "block": "stone"}, "place.pos"),
        ({"do": "place", "pos": [1, 2, 3]}, "non-empty string 'block'"),
        ({"do": "fill", "region": [[0, 0, 0]], "with": "dirt"}, "fill.region"),
        ({"do": "place_each", "blocks": []}, "place_each.blocks"),
        ({"do": "assert", "checks": [{"pos": [0, 0, 0]}]}, "assert.checks[0]"),
        ({"do": "assert_state", "pos": [0, 0, 0], "state": "lit", "values": [1]}, "values"),
        ({"do": "remove", "pos": [0, True, 0]}, "remove.pos"),
    ],
)
def test_parse_action_rejects_malformed_input(data, message):
    with pytest.raises(TestSpecError) as exc:
        parse_action(data)
    assert message in str(exc.value)


def test_parse_test_accepts_single_tick_or_list():
    spec = parse_test(
        {
            "name": "t",
            "timeline": [
                {"at": 0, "do": "place", "pos": [0, 0, 0], "block": "stone"},
                {"at": [1, 4], "do": "assert", "checks": [{"pos": [0, 0, 0], "is": "stone"}]},
            ],
            "cleanup": {"region": [[3, 3, 3], [0, 0, 0]]},
        }
    )
    assert spec.timeline[0].at == (0,)
    assert spec.timeline[1].at == (1, 4)
    assert spec.max_tick == 4
    assert spec.cleanup_region == ((0, 0, 0), (3, 3, 3))
    assert spec.description is None


def test_parse_test_derives_cleanup_region_from_positions():
    spec = parse_test(
        {
            "name": "derived",
            "timeline": [
                {"at": 0, "do": "fill", "region": [[2, 0, 2], [4, 0, 4]], "with": "stone"},
                {"at": 1, "do": "remove", "pos": [-1, 5, 3]},
            ],
        }
    )
    assert spec.cleanup_region == ((-1, 0, 2), (4, 5, 4))


def test_parse_test_reports_entry_index_and_source():
    with pytest.raises(TestSpecError) as exc:
        parse_test(
            {
                "name": "bad",
                "timeline": [
                    {"at": 0, "do": "remove", "pos": [0, 0, 0]},
                    {"at": [0, 1], "do": "assert_state", "pos": [0, 0, 0], "state": "lit", "values": ["true"]},
                ],
            },
            source="bad.json",
        )
    message = str(exc.value)
    assert message.startswith("bad.json: ")
    assert "timeline[1]" in message
    assert exc.value.source == "bad.json"


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"timeline": []},
        {"name": "no-timeline"},
        {"name": "t", "timeline": ["not-an-object"]},
        {"name": "t", "timeline": [{"at": "soon", "do": "remove", "pos": [0, 0, 0]}]},
        {"name": "t", "timeline": [{"at": -1, "do": "remove", "pos": [0, 0, 0]}]},
        {"name": "t", "timeline": [{"at": [], "do": "remove", "pos": [0, 0, 0]}]},
        {"name": "t", "timeline": [], "cleanup": "everything"},
        {"name": "t", "timeline": []},
    ],
)
def test_parse_test_rejects_invalid_documents(data):
    with pytest.raises(TestSpecError):
        parse_test(data)


def test_load_test_file_reports_bad_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(TestSpecError) as exc:
        load_test_file(path)
    assert str(path) in str(exc.value)
    assert "invalid JSON" in str(exc.value)


def test_discover_walks_directories_in_sorted_order(tmp_path):
    nested = tmp_path / "nested"
    nested.mkdir()
    _write(tmp_path / "b.json", {})
    _write(tmp_path / "a.json", {})
    _write(nested / "c.json", {})
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    found = discover_test_files([tmp_path])

    assert [p.relative_to(tmp_path).as_posix() for p in found] == [
        "a.json",
        "b.json",
        "nested/c.json",
    ]


def test_discover_rejects_missing_path(tmp_path):
    with pytest.raises(TestSpecError):
        discover_test_files([tmp_path / "missing"])


def test_load_example_tests():
    tests = load_tests([EXAMPLE_TESTS_DIR])

    assert [t.name for t in tests] == ["basic_placement", "lever_toggle", "place_and_remove"]
    assert all(t.source for t in tests)
    place_and_remove = tests[2]
    assert place_and_remove.cleanup_region == ((0, 1, 0), (2, 1, 0))


def test_filter_tests_by_glob():
    tests = load_tests([EXAMPLE_TESTS_DIR])

    assert [t.name for t in filter_tests(tests, "lever*")] == ["lever_toggle"]
    assert [t.name for t in filter_tests(tests, "*place*")] == [
        "basic_placement",
        "place_and_remove",
    ]
    assert filter_tests(tests, None) == tests
    assert filter_tests(tests, "nothing-*") == []

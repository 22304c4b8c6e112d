import pytest

from autopick.diagnostics import run_diagnostics
from autopick.errors import CaptureError
from autopick.models import ClickPoint, Rect, Settings
from autopick.perception import UiTreeReader, count_nodes, parse_bounds, parse_ui_dump, walk_text_nodes
from autopick.state import RunState

from conftest import FakeActuator

DUMP = """<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<hierarchy rotation="0">
  <node index="0" text="" content-desc="" package="com.example.rewards" bounds="[0,0][1080,2340]">
    <node index="0" text="Daily tasks" content-desc="" package="com.example.rewards" bounds="[0,100][1080,200]" />
    <node index="1" text="" content-desc="" package="com.example.rewards" bounds="[0,900][1080,1300]">
      <node index="0" text="LOAD" content-desc="progress" package="com.example.rewards" bounds="[40,1000][300,1060]" />
      <node index="1" text="CLAIM" content-desc="" package="com.example.rewards" bounds="[400,1000][700,1060]" />
    </node>
    <node index="2" text="Footer" content-desc="" package="com.example.rewards" bounds="[0,2200][1080,2340]" />
  </node>
</hierarchy>UI hierchary dumped to: /dev/tty"""


class ChainNode:
    def __init__(self, depth):
        self.text = f"n{depth}"
        self.content_description = ""
        self.bounds = Rect(0, 0, 100, 100)
        self.children = []


def chain(depth):
    root = node = ChainNode(depth)
    for d in range(depth - 1, -1, -1):
        child = ChainNode(d)
        node.children.append(child)
        node = child
    return root


def test_parse_bounds():
    assert parse_bounds("[40,1000][300,1060]") == Rect(40, 1000, 300, 1060)
    assert parse_bounds("") is None
    assert parse_bounds("40,1000,300,1060") is None


def test_walk_collects_only_overlapping_nodes_in_order():
    root = parse_ui_dump(DUMP)
    blocks = walk_text_nodes(root, Rect(0, 950, 1080, 1100))
    assert [b.text for b in blocks] == ["LOAD", "progress", "CLAIM"]
    assert blocks[2].bounds == Rect(400, 1000, 700, 1060)


def test_non_overlapping_subtree_is_pruned():
    root = parse_ui_dump(DUMP)
    # Only the header row falls inside this band
    blocks = walk_text_nodes(root, Rect(0, 100, 1080, 200))
    assert [b.text for b in blocks] == ["Daily tasks"]


def test_reader_builds_combined_text():
    root = parse_ui_dump(DUMP)
    result = UiTreeReader(lambda: root).capture(Rect(0, 950, 1080, 1100))
    assert result.text == "LOAD\nprogress\nCLAIM\n"
    assert len(result.blocks) == 3


def test_missing_root_gives_empty_result():
    assert UiTreeReader(lambda: None).capture(Rect(0, 0, 10, 10)).is_empty


def test_malformed_dump_is_a_capture_error():
    with pytest.raises(CaptureError):
        parse_ui_dump("<hierarchy><node bounds=")


def test_empty_dump_has_no_root():
    assert parse_ui_dump("<hierarchy rotation=\"0\"></hierarchy>") is None
    assert parse_ui_dump("ERROR: could not get idle state.") is None


def test_deep_trees_do_not_hit_recursion_limit():
    root = chain(5000)
    blocks = walk_text_nodes(root, Rect(0, 0, 50, 50))
    assert len(blocks) == 5001
    assert blocks[0].text == "n5000"
    assert count_nodes(root) == 5001


def test_availability_records_package_and_node_count():
    root = parse_ui_dump(DUMP)
    reader = UiTreeReader(lambda: root)
    assert reader.is_available()
    assert reader.describe() == "package=com.example.rewards nodes=7"

    offline = UiTreeReader(lambda: None)
    assert not offline.is_available()
    assert offline.describe() == "package=? nodes=0"


def test_diagnostics_name_the_foreground_package():
    root = parse_ui_dump(DUMP)
    state = RunState(Settings(click_point=ClickPoint(540, 1030)))
    report = run_diagnostics(UiTreeReader(lambda: root), FakeActuator(), state)
    assert report.passed
    name, ok, detail = report.checks[0]
    assert (name, ok) == ("reader", True)
    assert "com.example.rewards" in detail

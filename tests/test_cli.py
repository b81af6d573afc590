import json

import pytest

from decision_flow import cli
from decision_flow.graph_model import GraphSnapshot, NodeDraft
from decision_flow.graph_store import GraphStore
from decision_flow.persistence import JsonFilePersistence
from decision_flow.prediction import FALLBACK_ANALYSIS
from decision_flow.scheduling import InlineSaveDispatcher


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("OPENAI_API_KEY", "FLOW_GRAPH_PATH", "FLOW_SPACING"):
        monkeypatch.delenv(name, raising=False)


def scripted_input(lines):
    iterator = iter(lines)

    def fake_input(prompt: str) -> str:
        return next(iterator)

    return fake_input


def test_grow_offline_on_empty_tree_creates_root_and_outcomes(tmp_path, capsys):
    graph_path = tmp_path / "nodes.json"
    answers = ["Should I learn piano?", "", "Curious", "No time", "Joy", "Money", "Teacher", "y"]

    code = cli.main(["--graph-path", str(graph_path), "grow", "--offline"], input_fn=scripted_input(answers))

    assert code == 0
    payload = json.loads(graph_path.read_text(encoding="utf-8"))
    assert payload["nodes"][0]["label"] == "Should I learn piano?"
    assert len(payload["nodes"]) == 1 + 9
    assert sum(edge["emphasized"] for edge in payload["edges"]) == len(FALLBACK_ANALYSIS.positive)
    output = capsys.readouterr().out
    assert "Answer cannot be empty." in output
    assert "Positive outcomes:" in output


def test_grow_requires_node_on_existing_tree(tmp_path):
    graph_path = tmp_path / "nodes.json"
    GraphStore(JsonFilePersistence(graph_path), dispatcher=InlineSaveDispatcher()).create_root(NodeDraft(label="root"))

    assert cli.main(["--graph-path", str(graph_path), "grow", "--offline"], input_fn=scripted_input([])) == 2


def test_grow_cancel_on_existing_node_leaves_file(tmp_path):
    graph_path = tmp_path / "nodes.json"
    GraphStore(JsonFilePersistence(graph_path), dispatcher=InlineSaveDispatcher()).create_root(NodeDraft(label="root"))
    before = graph_path.read_text(encoding="utf-8")

    code = cli.main(
        ["--graph-path", str(graph_path), "grow", "--offline", "--node", "1"],
        input_fn=scripted_input(["first", ":cancel"]),
    )

    assert code == 0
    assert graph_path.read_text(encoding="utf-8") == before


def test_move_and_show(tmp_path, capsys):
    graph_path = tmp_path / "nodes.json"
    GraphStore(JsonFilePersistence(graph_path), dispatcher=InlineSaveDispatcher()).create_root(
        NodeDraft(label="root"), [NodeDraft(label="child")]
    )

    assert cli.main(["--graph-path", str(graph_path), "move", "2", "5", "6"]) == 0
    assert cli.main(["--graph-path", str(graph_path), "show"]) == 0

    output = capsys.readouterr().out
    assert "Moved node 2 to (5, 6)." in output
    assert "  - [2] child  (leaf @ 5,6)" in output


def test_unknown_node_reports_error(tmp_path, capsys):
    graph_path = tmp_path / "nodes.json"

    assert cli.main(["--graph-path", str(graph_path), "move", "3", "0", "0"]) == 1
    assert "Unknown node: 3" in capsys.readouterr().out


def test_corrupt_graph_file(tmp_path, capsys):
    graph_path = tmp_path / "nodes.json"
    graph_path.write_text("[", encoding="utf-8")

    assert cli.main(["--graph-path", str(graph_path), "show"]) == 1
    assert "Failed to read graph file" in capsys.readouterr().out


def test_render_tree_marks_emphasized_children():
    snapshot = GraphSnapshot.from_json(
        {
            "nodes": [
                {"id": "1", "position": {"x": 0, "y": 0}, "label": "root", "kind": "branch"},
                {"id": "2", "position": {"x": 0, "y": 150}, "label": "good", "kind": "leaf"},
            ],
            "edges": [{"id": "e1-2", "source": "1", "target": "2", "emphasized": True}],
        }
    )

    lines = cli.render_tree(snapshot)

    assert lines[0].startswith("- [1] root")
    assert lines[1].startswith("  * [2] good")
    assert cli.render_tree(GraphSnapshot()) == ["(empty tree)"]


@pytest.mark.parametrize(
    "payload",
    [
        {
            "nodes": [{"id": "1", "position": {"x": 0, "y": 0}, "label": "a"}],
            "edges": [{"id": "e1-1", "source": "1", "target": "1"}],
        },
        {"nodes": [{"id": "1", "position": [1, 2], "label": "a"}], "edges": []},
    ],
    ids=["self-loop", "position-list"],
)
def test_show_reports_malformed_tree(tmp_path, capsys, payload):
    graph_path = tmp_path / "nodes.json"
    graph_path.write_text(json.dumps(payload), encoding="utf-8")

    assert cli.main(["--graph-path", str(graph_path), "show"]) == 1
    assert "Failed to read graph file" in capsys.readouterr().out
    assert json.loads(graph_path.read_text(encoding="utf-8")) == payload


def test_grow_with_node_on_empty_tree_says_it_is_ignored(tmp_path, capsys):
    graph_path = tmp_path / "nodes.json"
    answers = ["Should I move?", "a", "b", "c", "d", "e", "y"]

    code = cli.main(
        ["--graph-path", str(graph_path), "grow", "--offline", "--node", "5"],
        input_fn=scripted_input(answers),
    )

    assert code == 0
    assert "ignoring --node 5" in capsys.readouterr().out
    assert json.loads(graph_path.read_text(encoding="utf-8"))["nodes"][0]["label"] == "Should I move?"


def test_move_closes_store_once(tmp_path, monkeypatch):
    graph_path = tmp_path / "nodes.json"
    GraphStore(JsonFilePersistence(graph_path), dispatcher=InlineSaveDispatcher()).create_root(NodeDraft(label="root"))
    closes = []
    original_close = GraphStore.close

    def counting_close(self):
        closes.append(self)
        original_close(self)

    monkeypatch.setattr(GraphStore, "close", counting_close)

    assert cli.main(["--graph-path", str(graph_path), "move", "1", "0", "0"]) == 0
    assert len(closes) == 1

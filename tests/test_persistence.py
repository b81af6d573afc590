import json

import pytest

from decision_flow.errors import PersistenceReadFailed
from decision_flow.graph_model import GraphSnapshot, NodeDraft, NodeKind, Position, display_label
from decision_flow.graph_store import GraphStore
from decision_flow.persistence import JsonFilePersistence
from decision_flow.scheduling import BackgroundSaveDispatcher, InlineSaveDispatcher


@pytest.fixture
def graph_file(tmp_path):
    return tmp_path / "node_data" / "nodes.json"


def test_missing_file_loads_empty_tree(graph_file):
    assert JsonFilePersistence(graph_file).load() == GraphSnapshot()


def test_save_then_load_matches_store(graph_file):
    gateway = JsonFilePersistence(graph_file)
    store = GraphStore(gateway, dispatcher=InlineSaveDispatcher())
    store.create_root(NodeDraft(label="Choisir une école ?"), [NodeDraft(label="Oui")])

    payload = json.loads(graph_file.read_text(encoding="utf-8"))
    assert payload["nodes"][0] == {
        "id": "1",
        "position": {"x": 400.0, "y": 50.0},
        "label": "Choisir une école ?",
        "kind": "branch",
    }
    assert payload["edges"] == [{"id": "e1-2", "source": "1", "target": "2", "emphasized": False}]
    assert "école" in graph_file.read_text(encoding="utf-8")
    assert gateway.load() == store.current_snapshot()


def test_corrupt_file_raises_read_failure(graph_file):
    graph_file.parent.mkdir(parents=True)
    graph_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceReadFailed):
        JsonFilePersistence(graph_file).load()


def node_entry(node_id, **overrides):
    entry = {"id": node_id, "position": {"x": 0, "y": 0}, "label": node_id}
    entry.update(overrides)
    return entry


@pytest.mark.parametrize(
    "payload",
    [
        pytest.param(
            {
                "nodes": [node_entry("1"), node_entry("2"), node_entry("3")],
                "edges": [{"source": "1", "target": "3"}, {"source": "2", "target": "3"}],
            },
            id="two-parents",
        ),
        pytest.param(
            {"nodes": [node_entry("1"), node_entry("2")], "edges": [{"source": "2", "target": "2"}]},
            id="self-loop",
        ),
        pytest.param({"nodes": [node_entry("1"), node_entry("1")], "edges": []}, id="duplicate-ids"),
        pytest.param({"nodes": [node_entry("1")], "edges": [{"source": "1", "target": "9"}]}, id="missing-target"),
        pytest.param(
            {
                "nodes": [node_entry("1"), node_entry("2"), node_entry("3")],
                "edges": [{"source": "2", "target": "3"}, {"source": "3", "target": "2"}],
            },
            id="detached-cycle",
        ),
        pytest.param({"nodes": [node_entry("1", position=[1, 2])], "edges": []}, id="position-list"),
        pytest.param({"nodes": [node_entry("1", data="label")], "edges": []}, id="data-string"),
        pytest.param({"nodes": [node_entry("1", position={"x": "left", "y": 0})], "edges": []}, id="text-coordinate"),
        pytest.param({"nodes": [node_entry("1", kind="trunk")], "edges": []}, id="unknown-kind"),
    ],
)
def test_malformed_tree_raises_read_failure(graph_file, payload):
    graph_file.parent.mkdir(parents=True)
    graph_file.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(PersistenceReadFailed):
        JsonFilePersistence(graph_file).load()


def test_save_failure_is_reported_not_raised(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    result = JsonFilePersistence(blocker / "nodes.json").save(GraphSnapshot())

    assert result.success is False
    assert "Failed to update file" in result.message


def test_legacy_canvas_format_is_accepted(graph_file):
    graph_file.parent.mkdir(parents=True)
    graph_file.write_text(
        json.dumps(
            {
                "nodes": [
                    {"id": "1", "position": {"x": 400, "y": 50}, "data": {"label": "Start"}, "type": "input"},
                    {
                        "id": "2",
                        "position": {"x": 100, "y": 200},
                        "data": {"label": "Outcome"},
                        "type": "output",
                        "style": {"backgroundColor": "#dcfce7"},
                    },
                ],
                "edges": [{"id": "e1-2", "source": "1", "target": "2", "animated": False}],
            }
        ),
        encoding="utf-8",
    )

    snapshot = JsonFilePersistence(graph_file).load()

    assert [node.label for node in snapshot.nodes] == ["Start", "Outcome"]
    assert [node.kind for node in snapshot.nodes] == [NodeKind.ROOT, NodeKind.LEAF]
    assert snapshot.edges[0].emphasized is False


def test_background_dispatcher_writes_in_order(graph_file):
    gateway = JsonFilePersistence(graph_file)
    store = GraphStore(gateway, dispatcher=BackgroundSaveDispatcher())
    store.create_root(NodeDraft(label="root"))
    for step in range(5):
        store.reposition("1", Position(x=float(step), y=0))
    store.close()

    assert gateway.load().node("1").position == Position(x=4.0, y=0)


def test_display_label_truncates_only_for_rendering():
    label = "word " * 30
    shown = display_label(label, limit=20)

    assert len(shown) <= 20
    assert shown.endswith("...")
    assert display_label("short") == "short"

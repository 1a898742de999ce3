import pytest

from flowbuilder.workflow.errors import (
    ConnectionNotFoundError,
    WorkflowNameError,
    WorkflowNotFoundError,
)
from flowbuilder.workflow.graph_store import GraphStore
from flowbuilder.workflow.templates import create_branching_template
from flowbuilder.workflow.workflow_model import Connection, WorkflowSnapshot
from flowbuilder.workflow.workflow_store import AIConnectionStore, WorkflowStore


@pytest.fixture
def workflow_store(tmp_path):
    return WorkflowStore(tmp_path / "workflows")


@pytest.fixture
def connection_store(tmp_path):
    return AIConnectionStore(tmp_path / "connections")


def _graph() -> GraphStore:
    graph = GraphStore(project_name="Roundtrip")
    prompt = graph.add_node("prompt", position={"x": 40, "y": 80})
    graph.on_connect(Connection(source="start", target=prompt))
    graph.set_node_output("start", {"user_input": "hi"})
    graph.get_node(prompt).data.icon = "pen"
    graph.set_viewport({"x": 1, "y": 2, "zoom": 0.5})
    return graph


def test_save_then_load_reproduces_graph(workflow_store):
    graph = _graph()
    before = graph.to_snapshot()

    workflow_store.save(graph.to_snapshot())
    loaded = workflow_store.load("Roundtrip")

    assert loaded is not None
    assert loaded.project_name == "Roundtrip"
    assert [n.model_dump() for n in loaded.nodes] == [n.model_dump() for n in before.nodes]
    assert [e.model_dump() for e in loaded.edges] == [e.model_dump() for e in before.edges]
    assert loaded.viewport == before.viewport
    assert all(n.data.icon is None for n in loaded.nodes)


def test_saved_file_uses_camel_case_shape(workflow_store):
    workflow_store.save(_graph().to_snapshot())

    raw = (workflow_store.storage_dir / "Roundtrip.json").read_text(encoding="utf-8")

    assert '"projectName": "Roundtrip"' in raw
    assert '"lastModified"' in raw
    assert '"isExecuting"' in raw
    assert '"icon"' not in raw


def test_save_rejects_empty_name(workflow_store):
    with pytest.raises(WorkflowNameError):
        workflow_store.save(WorkflowSnapshot(project_name="  "))


def test_load_missing_returns_none(workflow_store):
    assert workflow_store.load("nothing") is None


def test_list_delete_and_encoded_keys(workflow_store):
    workflow_store.save(WorkflowSnapshot(project_name="b flow/1"))
    workflow_store.save(WorkflowSnapshot(project_name="a flow"))

    assert workflow_store.list_names() == ["a flow", "b flow/1"]
    assert (workflow_store.storage_dir / "b%20flow%2F1.json").exists()

    assert workflow_store.delete("a flow") is True
    assert workflow_store.delete("a flow") is False
    assert workflow_store.list_names() == ["b flow/1"]


def test_similar_names_do_not_overwrite_each_other(workflow_store):
    for name in ("my flow", "my_flow", "my.flow", ".tmp-flow"):
        workflow_store.save(WorkflowSnapshot(project_name=name))

    assert workflow_store.list_names() == [".tmp-flow", "my flow", "my.flow", "my_flow"]
    for name in ("my flow", "my_flow", "my.flow", ".tmp-flow"):
        assert workflow_store.load(name).project_name == name

    workflow_store.delete("my flow")
    assert workflow_store.list_names() == [".tmp-flow", "my.flow", "my_flow"]


def test_save_upserts(workflow_store):
    snapshot = create_branching_template()
    workflow_store.save(snapshot)
    snapshot.nodes = snapshot.nodes[:1]
    workflow_store.save(snapshot)

    assert workflow_store.list_names() == ["Branching Prompt"]
    assert len(workflow_store.load("Branching Prompt").nodes) == 1


def test_rename_writes_new_then_removes_old(workflow_store):
    workflow_store.save(create_branching_template())

    renamed = workflow_store.rename("Branching Prompt", "Renamed")

    assert renamed.project_name == "Renamed"
    assert workflow_store.exists("Renamed")
    assert not workflow_store.exists("Branching Prompt")
    assert len(workflow_store.load("Renamed").nodes) == 4


def test_rename_rejections(workflow_store):
    workflow_store.save(WorkflowSnapshot(project_name="one"))
    workflow_store.save(WorkflowSnapshot(project_name="two"))

    with pytest.raises(WorkflowNameError):
        workflow_store.rename("one", "")
    with pytest.raises(WorkflowNameError):
        workflow_store.rename("one", "one")
    with pytest.raises(WorkflowNameError):
        workflow_store.rename("one", "two")
    with pytest.raises(WorkflowNotFoundError):
        workflow_store.rename("ghost", "three")

    assert workflow_store.list_names() == ["one", "two"]


def test_malformed_files_are_skipped(workflow_store):
    workflow_store.save(WorkflowSnapshot(project_name="good"))
    (workflow_store.storage_dir / "bad.json").write_text("{not json", encoding="utf-8")

    assert workflow_store.list_names() == ["good"]
    assert workflow_store.load("bad") is None


def test_connection_crud(connection_store):
    created = connection_store.add({
        "name": "OpenAI",
        "type": "language",
        "provider": "openai",
        "model": "gpt-4o",
        "apiKey": "sk-test",
        "temperature": 0.2,
    })

    assert created.id
    assert created.status == "draft"
    assert connection_store.get(created.id) == created

    updated = connection_store.update(created.id, {"status": "active", "max_tokens": 256})
    assert updated.status == "active"
    assert updated.max_tokens == 256
    assert updated.api_key == "sk-test"
    assert connection_store.get(created.id).max_tokens == 256

    assert [c.id for c in connection_store.list_all()] == [created.id]
    assert connection_store.delete(created.id) is True
    assert connection_store.get(created.id) is None


def test_connection_update_missing_raises(connection_store):
    with pytest.raises(ConnectionNotFoundError):
        connection_store.update("missing", {"name": "x"})


def test_connection_list_is_sorted_by_name(connection_store):
    for name in ("zeta", "alpha"):
        connection_store.add({"name": name, "type": "embedding", "provider": "local", "model": "m"})

    assert [c.name for c in connection_store.list_all()] == ["alpha", "zeta"]

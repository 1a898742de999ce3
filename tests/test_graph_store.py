from flowbuilder.workflow.graph_store import GraphStore, deep_equal
from flowbuilder.workflow.workflow_model import Connection, NodeType


def _connect(store: GraphStore, source: str, target: str) -> str:
    return store.on_connect(Connection(source=source, target=target))


def test_fresh_store_has_single_start_node():
    store = GraphStore()

    assert [n.id for n in store.nodes] == ["start"]
    assert store.get_start_node().data.label == "Start"
    assert store.edges == []


def test_add_node_dedups_labels_and_seeds_defaults():
    store = GraphStore()

    first = store.add_node(NodeType.PROMPT)
    second = store.add_node("prompt")
    third = store.add_node("prompt")

    labels = [store.get_node(i).data.label for i in (first, second, third)]
    assert labels == ["Prompt", "Prompt 1", "Prompt 2"]

    node = store.get_node(first)
    assert node.data.config["outputVariable"] == "user_input"
    assert "{user_input}" in node.data.config["template"]
    assert node.data.output is None
    assert node.data.input_data is None
    assert node.data.is_executing is False


def test_add_node_merges_defaults_under_given_config():
    store = GraphStore()

    node_id = store.add_node(
        "agent",
        position={"x": 10, "y": 20},
        initial_data={"label": "Researcher", "config": {"model": "gpt-4o"}},
    )

    node = store.get_node(node_id)
    assert node.data.label == "Researcher"
    assert node.position.x == 10
    assert node.data.config["model"] == "gpt-4o"
    assert node.data.config["tools"] == []
    assert node.data.config["agentOutputVariable"] == "agent_response"


def test_merge_defaults_are_not_shared_between_nodes():
    store = GraphStore()
    a = store.add_node("merge")
    b = store.add_node("merge")

    store.get_node(a).data.config["mergeMappings"].append({"outputKey": "k"})

    assert store.get_node(b).data.config["mergeMappings"] == []


def test_update_node_data_with_equal_data_is_noop():
    store = GraphStore()
    edge_target = store.add_node("end")
    edge_id = _connect(store, "start", edge_target)
    store.set_edge_output(edge_id, {"sentinel": True})

    same = store.get_node("start").data.model_dump()
    changed = store.update_node_data("start", same)

    assert changed is False
    assert store.get_edge(edge_id).data.output == {"sentinel": True}


def test_update_node_data_ignores_icon_changes():
    store = GraphStore()
    data = store.get_node("start").data.model_copy(deep=True)
    data.icon = "rocket"

    assert store.update_node_data("start", data) is False


def test_update_node_data_propagates_only_changed_output():
    store = GraphStore()
    target = store.add_node("end")
    edge_id = _connect(store, "start", target)

    data = store.get_node("start").data.model_dump()
    data["description"] = "changed"
    assert store.update_node_data("start", data) is True
    assert store.get_edge(edge_id).data.output is None

    data["output"] = {"answer": 42}
    assert store.update_node_data("start", data) is True
    assert store.get_edge(edge_id).data.output == {"answer": 42}


def test_update_unknown_node_is_ignored():
    store = GraphStore()

    assert store.update_node_data("nope", {"label": "x"}) is False


def test_remove_node_cascades_and_invalidates_neighbours():
    store = GraphStore()
    middle = store.add_node("function")
    tail = store.add_node("end")
    _connect(store, "start", middle)
    _connect(store, middle, tail)
    store.set_node_output("start", {"a": 1})
    store.set_node_output(tail, {"b": 2})

    store.remove_node(middle)

    assert store.get_node(middle) is None
    assert all(middle not in (e.source, e.target) for e in store.edges)
    assert store.get_node("start").data.output is None
    assert store.get_node(tail).data.output is None


def test_remove_edge_clears_source_output():
    store = GraphStore()
    target = store.add_node("end")
    edge_id = _connect(store, "start", target)
    store.set_node_output("start", {"a": 1})
    store.set_node_output(target, {"b": 2})

    store.remove_edge(edge_id)

    assert store.get_edge(edge_id) is None
    assert store.get_node("start").data.output is None
    assert store.get_node(target).data.output == {"b": 2}


def test_on_connect_seeds_condition_label():
    store = GraphStore()
    condition = store.add_node("condition")
    target = store.add_node("end")

    edge_id = _connect(store, condition, target)
    plain_id = _connect(store, "start", condition)

    assert store.get_edge(edge_id).data.label == "data['value'] > 0"
    assert store.get_edge(edge_id).data.output is None
    assert store.get_edge(plain_id).data.label is None


def test_on_connect_uses_declared_class_name():
    store = GraphStore()
    store.get_node("start").data.config["className"] = "State"
    condition = store.add_node("condition")
    target = store.add_node("end")

    edge_id = _connect(store, condition, target)

    assert store.get_edge(edge_id).data.label == "State['value'] > 0"


def test_on_connect_rejects_unknown_and_duplicate():
    store = GraphStore()
    target = store.add_node("end")

    assert _connect(store, "start", "missing") is None
    assert _connect(store, "start", target) is not None
    assert _connect(store, "start", target) is None
    assert len(store.edges) == 1


def test_condition_output_gates_each_edge():
    store = GraphStore()
    store.get_node("start").data.config["className"] = "X"
    condition = store.add_node("condition")
    yes = store.add_node("function")
    no = store.add_node("function")
    e1 = _connect(store, condition, yes)
    e2 = _connect(store, condition, no)
    store.update_edge_label(e1, "X['v'] > 0")
    store.update_edge_label(e2, "X['v'] <= 0")

    store.set_node_output(condition, {"v": 5})

    assert store.get_edge(e1).data.output == {"v": 5}
    assert store.get_edge(e2).data.output is None


def test_snapshot_replace_and_reset():
    store = GraphStore(project_name="Demo")
    node_id = store.add_node("prompt")
    _connect(store, "start", node_id)
    store.set_viewport({"x": 5, "y": 6, "zoom": 2})

    snapshot = store.to_snapshot()
    other = GraphStore()
    other.replace_state(snapshot)

    assert other.project_name == "Demo"
    assert [n.id for n in other.nodes] == ["start", node_id]
    assert other.viewport.zoom == 2

    other.reset()
    assert [n.id for n in other.nodes] == ["start"]
    assert other.edges == []
    assert store.get_node(node_id) is not None


def test_deep_equal_handles_cycles_and_callables():
    left = {"a": [1, 2], "fn": lambda: 1}
    left["self"] = left
    right = {"a": [1, 2]}
    right["self"] = right

    assert deep_equal(left, right)
    assert not deep_equal({"a": 1}, {"a": 2})

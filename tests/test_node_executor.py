import pytest

from flowbuilder.workflow.graph_store import GraphStore
from flowbuilder.workflow.node_executor import NodeExecutor
from flowbuilder.workflow.nodes.io_nodes import build_start_payload, coerce_variable_value
from flowbuilder.workflow.nodes.logic_nodes import FunctionNode
from flowbuilder.workflow.nodes.model_nodes import deterministic_embedding
from flowbuilder.workflow.workflow_model import Connection

START_PATH = "/workflow/node/startnode"
PROMPT_PATH = "/workflow/node/promptnode"
AGENT_PATH = "/workflow/node/agentnode"


def _connect(store: GraphStore, source: str, target: str) -> str:
    return store.on_connect(Connection(source=source, target=target))


@pytest.fixture
def executor(store, client, execution_config):
    return NodeExecutor(store, client, execution_config)


@pytest.mark.parametrize(
    "var_type,raw,expected",
    [
        ("int", "42abc", 42),
        ("int", "abc", 0),
        ("float", "3.5kg", 3.5),
        ("float", "", 0.0),
        ("list", "[1, 2]", [1, 2]),
        ("list", "not json", []),
        ("list", '{"a": 1}', []),
        ("dict", '{"a": 1}', {"a": 1}),
        ("dict", "[", {}),
        ("str", "hello", "hello"),
        ("str", None, ""),
    ],
)
def test_coerce_variable_value(var_type, raw, expected):
    assert coerce_variable_value(var_type, raw) == expected


def test_build_start_payload_shape():
    payload = build_start_payload({
        "className": "State",
        "variables": [{"name": "n", "type": "int", "defaultValue": "7", "selectVariable": ""}],
    })

    assert payload == {
        "className": "State",
        "classType": "TypedDict",
        "variables": [
            {"variableName": "n", "variableType": "int", "defaultValue": 7, "selectVariable": ""},
        ],
    }


async def test_start_node_posts_coerced_variables(store, executor, compute):
    store.get_node("start").data.config.update({
        "className": "State",
        "variables": [
            {"name": "n", "type": "int", "defaultValue": "42abc"},
            {"name": "tags", "type": "list", "defaultValue": "not json"},
        ],
    })
    compute.responses[START_PATH] = {"n": 42, "tags": []}

    result = await executor.execute("start")

    sent = compute.payloads(START_PATH)[0]
    assert [v["defaultValue"] for v in sent["variables"]] == [42, []]
    assert result.output == {"n": 42, "tags": []}
    node = store.get_node("start")
    assert node.data.output == {"n": 42, "tags": []}
    assert node.data.is_executing is False
    assert node.data.input_data == {}


async def test_unknown_node_is_noop(executor, compute):
    assert await executor.execute("missing") is None
    assert compute.requests == []


async def test_prompt_requires_output_variable(store, executor, compute):
    node_id = store.add_node("prompt", initial_data={"config": {"outputVariable": ""}})

    await executor.execute(node_id)

    assert store.get_node(node_id).data.output == {"error": "Output variable name is required"}
    assert compute.requests == []
    assert store.get_node(node_id).data.is_executing is False


async def test_prompt_posts_template_and_input(store, executor, compute):
    node_id = store.add_node("prompt", initial_data={"config": {"template": "Hi {name}"}})
    _connect(store, "start", node_id)
    store.set_node_output("start", {"name": "Ada"})
    compute.responses[PROMPT_PATH] = {"name": "Ada", "user_input": "Hi Ada"}

    await executor.execute(node_id)

    assert compute.payloads(PROMPT_PATH) == [
        {"template": "Hi {name}", "param": {"name": "Ada"}, "return_key": "user_input"},
    ]
    node = store.get_node(node_id)
    assert node.data.output == {"name": "Ada", "user_input": "Hi Ada"}
    assert node.data.input_data == {"name": "Ada"}


async def test_transport_failure_becomes_error_output(store, executor, compute):
    node_id = store.add_node("prompt")
    compute.status[PROMPT_PATH] = 500
    compute.responses[PROMPT_PATH] = {"detail": "boom"}

    result = await executor.execute(node_id)

    output = store.get_node(node_id).data.output
    assert output["error"] == "Failed to connect to prompt node API"
    assert "500" in output["details"]
    assert result.is_error


async def test_agent_resolves_groups_and_merges_response(store, executor, compute):
    groups_id = store.add_node("groups", initial_data={"config": {"groups": [
        {"id": "mem1", "type": "memory", "name": "Chat memory"},
        {"id": "t1", "type": "tools", "name": "search", "description": "Web search", "code": "def run(q): ..."},
        {"id": "t2", "type": "tools"},
    ]}})
    agent_id = store.add_node("agent", initial_data={"config": {
        "model": "gpt-4o",
        "memoryGroup": "mem1",
        "tools": ["t1", "t2", "unknown"],
    }})
    _connect(store, "start", agent_id)
    store.set_node_output("start", {"user_input": "hi", "system_message": 5})
    compute.responses[AGENT_PATH] = {"text": "hello"}

    await executor.execute(agent_id)

    payload = compute.payloads(AGENT_PATH)[0]
    assert payload["model"] == "gpt-4o"
    assert payload["user_prompt"] == "hi"
    assert payload["system_prompt"] == ""
    assert payload["memory_group"] == "mem1"
    assert payload["memory_type"] == "ConversationBufferMemory"
    assert payload["tools"] == [
        {"name": "search", "description": "Web search", "code": "def run(q): ..."},
        {"name": "Unnamed Tool", "description": "No description", "code": ""},
    ]
    assert payload["return_key"] == "agent_response"
    assert store.get_node(agent_id).data.output == {
        "user_input": "hi",
        "system_message": 5,
        "agent_response": {"text": "hello"},
    }
    assert store.get_node(groups_id) is not None


async def test_agent_requires_model(store, executor, compute):
    agent_id = store.add_node("agent")

    await executor.execute(agent_id)

    assert store.get_node(agent_id).data.output == {"error": "Agent model is required in configuration."}
    assert compute.requests == []


async def test_merge_skips_missing_keys(store, executor):
    s1 = store.add_node("function")
    s2 = store.add_node("function")
    merge_id = store.add_node("merge", initial_data={"config": {"mergeMappings": [
        {"outputKey": "k", "sourceNodeId": s1, "sourceNodeKey": "missing"},
        {"outputKey": "a", "sourceNodeId": s2, "sourceNodeKey": "x"},
        {"outputKey": "b", "sourceNodeId": "ghost", "sourceNodeKey": "x"},
    ]}})
    _connect(store, s1, merge_id)
    _connect(store, s2, merge_id)
    store.set_node_output(s1, {"present": True})
    store.set_node_output(s2, {"x": 1})

    await executor.execute(merge_id)

    node = store.get_node(merge_id)
    assert node.data.output == {"a": 1}
    assert node.data.input_data == [{"present": True}, {"x": 1}]


async def test_merge_combines_records_per_source(store, executor):
    src = store.add_node("function")
    text = store.add_node("function")
    idle = store.add_node("function")
    merge_id = store.add_node("merge", initial_data={"config": {"mergeMappings": [
        {"outputKey": "first", "sourceNodeId": src, "sourceNodeKey": "a"},
        {"outputKey": "second", "sourceNodeId": src, "sourceNodeKey": "b"},
        {"outputKey": "third", "sourceNodeId": text, "sourceNodeKey": "a"},
    ]}})
    left = store.on_connect(Connection(source=src, target=merge_id, sourceHandle="left"))
    right = store.on_connect(Connection(source=src, target=merge_id, sourceHandle="right"))
    store.set_edge_output(left, {"a": 1, "b": 0})
    store.set_edge_output(right, {"b": 2})
    store.set_edge_output(_connect(store, text, merge_id), "plain text")
    _connect(store, idle, merge_id)

    assert executor.resolve_input(store.get_node(merge_id)) == {src: {"a": 1, "b": 2}}

    await executor.execute(merge_id)

    node = store.get_node(merge_id)
    assert node.data.output == {"first": 1, "second": 2}
    assert node.data.input_data == [{"a": 1, "b": 0}, {"b": 2}, "plain text"]


async def test_condition_node_gates_edges(store, executor):
    store.get_node("start").data.config["className"] = "X"
    condition = store.add_node("condition")
    yes = store.add_node("function")
    no = store.add_node("function")
    _connect(store, "start", condition)
    e1 = _connect(store, condition, yes)
    e2 = _connect(store, condition, no)
    store.update_edge_label(e1, "X['v'] > 0")
    store.update_edge_label(e2, "X['v'] <= 0")
    store.set_node_output("start", {"v": 5})

    result = await executor.execute(condition)

    assert result.edge_outputs == {e1: {"v": 5}, e2: None}
    assert store.get_edge(e1).data.output == {"v": 5}
    assert store.get_edge(e2).data.output is None


async def test_embedding_validation_order(store, executor):
    node_id = store.add_node("embedding", initial_data={"config": {"inputColumn": "text"}})

    await executor.execute(node_id)
    assert store.get_node(node_id).data.output == {"error": "Embedding model must be selected"}

    data = store.get_node(node_id).data.model_dump()
    data["config"] = {"model": "local"}
    store.update_node_data(node_id, data)
    await executor.execute(node_id)
    assert store.get_node(node_id).data.output == {"error": "Input column must be selected"}

    data["config"] = {"model": "local", "inputColumn": "text"}
    store.update_node_data(node_id, data)
    await executor.execute(node_id)
    assert store.get_node(node_id).data.output == {"error": "Output column must be selected"}


async def test_embedding_uses_local_vector_without_endpoint(store, executor, compute):
    node_id = store.add_node("embedding", initial_data={"config": {
        "model": "local", "inputColumn": "text", "outputColumn": "vector",
    }})
    _connect(store, "start", node_id)
    store.set_node_output("start", {"text": "hello world", "id": 1})

    await executor.execute(node_id)

    output = store.get_node(node_id).data.output
    assert output["id"] == 1
    assert output["text"] == "hello world"
    assert output["vector"] == deterministic_embedding("hello world", 64)
    assert len(output["vector"]) == 64
    assert compute.requests == []


async def test_loop_and_function_outputs(store, executor):
    loop_id = store.add_node("loop", initial_data={"config": {"repetitions": 3}})
    fn_id = store.add_node("function")

    await executor.execute(loop_id)
    await executor.execute(fn_id)

    assert store.get_node(loop_id).data.output == {
        "message": "Loop will execute 3 times",
        "repetitions": 3,
        "currentIteration": 0,
        "input": {},
    }
    assert store.get_node(fn_id).data.output == {"result": "Function executed", "input": {}}


async def test_unexpected_exception_is_contained(store, executor, monkeypatch):
    async def boom(self, node, input_data, context):
        raise RuntimeError("boom")

    monkeypatch.setattr(FunctionNode, "execute", boom)
    node_id = store.add_node("function")

    result = await executor.execute(node_id)

    node = store.get_node(node_id)
    assert node.data.output == {"error": "Execution failed", "details": "boom"}
    assert node.data.is_executing is False
    assert result.is_error


def test_deterministic_embedding_is_normalized():
    vector = deterministic_embedding("a b c a", 16)

    assert len(vector) == 16
    assert abs(sum(v * v for v in vector) - 1.0) < 1e-9
    assert deterministic_embedding("", 8) == [0.0] * 8

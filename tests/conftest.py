import asyncio
import inspect
import json
import os
import sys
import tempfile
from pathlib import Path

# Keep default stores out of the source tree
_test_tmp_dir = tempfile.mkdtemp(prefix="flowbuilder_test_")
os.environ.setdefault("FLOWBUILDER_STORAGE_DIR", _test_tmp_dir)

import httpx  # noqa: E402
import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent / "backend"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from flowbuilder.config import ComputeConfig, ExecutionConfig  # noqa: E402
from flowbuilder.workflow.compute_client import ComputeClient  # noqa: E402
from flowbuilder.workflow.graph_store import GraphStore  # noqa: E402


class FakeComputeService:
    """Records requests and answers them per endpoint path."""

    def __init__(self):
        self.requests = []
        self.responses = {}
        self.status = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content or b"{}")
        self.requests.append((request.url.path, payload))
        status = self.status.get(request.url.path, 200)
        body = self.responses.get(request.url.path, {})
        if callable(body):
            body = body(payload)
        return httpx.Response(status, json=body)

    def paths(self):
        return [path for path, _ in self.requests]

    def payloads(self, path):
        return [payload for p, payload in self.requests if p == path]


@pytest.fixture
def compute():
    return FakeComputeService()


@pytest.fixture
def compute_config():
    return ComputeConfig(base_url="http://compute.test")


@pytest.fixture
def client(compute, compute_config):
    return ComputeClient(
        compute_config,
        client=httpx.AsyncClient(transport=httpx.MockTransport(compute.handler)),
    )


@pytest.fixture
def execution_config():
    return ExecutionConfig()


@pytest.fixture
def store():
    return GraphStore()


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")

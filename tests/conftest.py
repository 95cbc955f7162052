"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from pool_reconciler.config import ReconcilerSettings
from pool_reconciler.exceptions import ProviderQueryError, RemoteTransportError
from pool_reconciler.models.cluster import (
    ClusterSnapshot,
    KubernetesAPIConfig,
    PoolConfig,
    PoolRole,
    ProviderConfig,
    SSHConfig,
)
from pool_reconciler.models.resource import InstanceCreateSpec, ProvisionedInstance

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


class FakeProvider:
    """In-memory ComputeProvider recording every call.

    ``scripted_lists`` maps a tag to queued list_by_tag responses (a list of
    instances or an exception); once the queue is empty the live state is used.
    ``scripted_status`` maps an instance id to statuses returned by get().
    """

    def __init__(self):
        self.instances: dict[str, ProvisionedInstance] = {}
        self.calls: list[tuple] = []
        self.created: list[InstanceCreateSpec] = []
        self.deleted: list[str] = []
        self.scripted_lists: dict[str, list] = {}
        self.scripted_status: dict[str, list[str]] = {}
        self.fail_create_at: int | None = None
        self.fail_delete: set[str] = set()
        self._next_id = 1000

    def add_instance(self, tag: str, name: str, **fields) -> ProvisionedInstance:
        self._next_id += 1
        instance = ProvisionedInstance(
            id=str(self._next_id), name=name, tags=[tag], status=fields.pop("status", "active"), **fields
        )
        self.instances[instance.id] = instance
        return instance

    def list_by_tag(self, tag: str) -> list[ProvisionedInstance]:
        self.calls.append(("list_by_tag", tag))
        queue = self.scripted_lists.get(tag)
        if queue:
            item = queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return list(item)
        return [i for i in self.instances.values() if tag in i.tags]

    def get(self, instance_id: str) -> ProvisionedInstance:
        self.calls.append(("get", instance_id))
        instance = self.instances[instance_id]
        queue = self.scripted_status.get(instance_id)
        if queue:
            instance = instance.model_copy(update={"status": queue.pop(0)})
            self.instances[instance_id] = instance
        return instance

    def create(self, spec: InstanceCreateSpec) -> ProvisionedInstance:
        self.calls.append(("create", spec.name))
        if self.fail_create_at is not None and len(self.created) == self.fail_create_at:
            raise ProviderQueryError(f"Failed to create droplet '{spec.name}'")
        self.created.append(spec)
        index = len(self.created)
        return self.add_instance(
            spec.tags[0],
            spec.name,
            size=spec.size,
            image=spec.image,
            region=spec.region,
            public_address=f"203.0.113.{index}",
            private_address=f"10.10.0.{index}",
        )

    def delete(self, instance_id: str) -> None:
        self.calls.append(("delete", instance_id))
        if instance_id in self.fail_delete:
            raise ProviderQueryError(f"Failed to delete droplet {instance_id}")
        self.instances.pop(instance_id, None)
        self.deleted.append(instance_id)

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeSession:
    """RemoteSession serving files from a dict."""

    def __init__(self, files: dict[str, bytes], fail_close: bool = False):
        self.files = files
        self.fail_close = fail_close
        self.closed = False

    def read_file(self, path: str) -> bytes:
        if path not in self.files:
            raise RemoteTransportError(f"Unable to read {path}")
        return self.files[path]

    def close(self) -> None:
        self.closed = True
        if self.fail_close:
            raise RemoteTransportError("Error closing SSH connection")


class FakeTransport:
    """RemoteTransport handing out queued sessions or connection errors."""

    def __init__(self, sessions: list):
        self.sessions = list(sessions)
        self.connections: list[tuple] = []

    def connect(self, address: str, port: int, user: str, key_path: str):
        self.connections.append((address, port, user, key_path))
        item = self.sessions.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeRenderer:
    """ScriptRenderer that records what it was asked to render."""

    def __init__(self):
        self.rendered: list[tuple] = []

    def render(self, script_refs: list[str], snapshot: ClusterSnapshot) -> bytes:
        self.rendered.append((list(script_refs), snapshot))
        values = ",".join(f"{k}={v}" for k, v in sorted(snapshot.provider_config.values.items()))
        return f"#!/bin/bash\n# {values}\n{' '.join(script_refs)}\n".encode()


class RecordingSleep:
    """Replacement for time.sleep that advances a fake clock."""

    def __init__(self):
        self.calls: list[float] = []
        self.now = 0.0

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.now += seconds

    def clock(self) -> float:
        return self.now


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def fake_session_factory():
    return FakeSession


@pytest.fixture
def fake_transport_factory():
    return FakeTransport


@pytest.fixture
def fast_settings():
    return ReconcilerSettings(
        master_attempts=4,
        master_interval=2.0,
        delete_attempts=3,
        delete_interval=1.0,
        delete_count_interval=1.5,
    )


@pytest.fixture
def master_pool():
    return PoolConfig(
        name="masters",
        role=PoolRole.MASTER,
        size="s-2vcpu-2gb",
        image="ubuntu-22-04-x64",
        max_count=1,
        bootstrap_scripts=["master.sh"],
    )


@pytest.fixture
def worker_pool():
    return PoolConfig(
        name="workers",
        role=PoolRole.NODE,
        size="s-1vcpu",
        image="ubuntu",
        region="nyc1",
        max_count=3,
        bootstrap_scripts=["node.sh"],
    )


@pytest.fixture
def snapshot(master_pool, worker_pool):
    return ClusterSnapshot(
        name="test-cluster",
        provider_config=ProviderConfig(
            location="nyc1",
            ssh=SSHConfig(
                user="root",
                port=22,
                public_key_path="~/.ssh/id_rsa.pub",
                public_key_fingerprint="aa:bb:cc",
                identifier="12345",
            ),
            kubernetes_api=KubernetesAPIConfig(port="6443"),
        ),
        pools=[master_pool, worker_pool],
    )

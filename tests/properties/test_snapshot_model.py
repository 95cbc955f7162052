"""Property-based tests for cluster snapshot validation."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pool_reconciler.exceptions import ConfigurationError
from pool_reconciler.models.cluster import ClusterSnapshot, PoolConfig, PoolRole, SSHConfig
from pool_reconciler.models.facts import ClusterFacts

NAME_CHARS = "abcdefghijklmnopqrstuvwxyz0123456789-_:"


@given(names=st.lists(st.text(alphabet=NAME_CHARS, min_size=1, max_size=8), min_size=2, max_size=6))
def test_duplicate_pool_names_rejected(names):
    """Snapshots with a repeated pool name never validate."""
    names = names + [names[0]]
    pools = [PoolConfig(name=n, role=PoolRole.NODE) for n in names]

    with pytest.raises(ValueError):
        ClusterSnapshot(name="dup", pools=pools)


@given(
    name=st.text(min_size=1, max_size=8).filter(
        lambda x: any(c not in NAME_CHARS + NAME_CHARS.upper() for c in x)
    )
)
def test_invalid_pool_name_rejected(name):
    """Pool names must be usable as provider tags."""
    with pytest.raises(ValueError):
        PoolConfig(name=name, role=PoolRole.NODE)


@given(count=st.integers(max_value=-1))
def test_negative_max_count_rejected(count):
    """A pool cannot ask for a negative number of instances."""
    with pytest.raises(ValueError):
        PoolConfig(name="workers", role=PoolRole.NODE, max_count=count)


@given(masters=st.integers(min_value=0, max_value=4), nodes=st.integers(min_value=0, max_value=4))
def test_master_pool_requires_exactly_one(masters, nodes):
    """master_pool() succeeds only with exactly one master pool."""
    pools = [PoolConfig(name=f"m{i}", role=PoolRole.MASTER) for i in range(masters)]
    pools += [PoolConfig(name=f"n{i}", role=PoolRole.NODE) for i in range(nodes)]
    snapshot = ClusterSnapshot(name="c", pools=pools)

    if masters == 1:
        assert snapshot.master_pool().name == "m0"
    else:
        with pytest.raises(ConfigurationError):
            snapshot.master_pool()


def test_snapshot_yaml_round_trip(tmp_path, snapshot):
    """Saving and loading a snapshot preserves it."""
    path = tmp_path / "cluster.yml"
    snapshot.save(path)

    assert ClusterSnapshot.load(path) == snapshot


def test_load_empty_snapshot(tmp_path):
    """An empty snapshot file is a configuration error."""
    path = tmp_path / "cluster.yml"
    path.write_text("")

    with pytest.raises(ConfigurationError):
        ClusterSnapshot.load(path)


def test_private_key_path_strips_pub_suffix():
    """The SSH private key lives next to the configured public key."""
    ssh = SSHConfig(public_key_path="/keys/cluster.pub")

    assert ssh.private_key_path == "/keys/cluster"


def test_facts_inject_copies_snapshot(snapshot):
    """Injecting facts never touches the original snapshot."""
    facts = ClusterFacts(
        api_port="6443",
        master_public_address="203.0.113.5",
        master_private_address="192.168.255.1",
        overlay_config="client\\n",
    )

    injected = facts.inject(snapshot)

    assert snapshot.provider_config.values == {}
    assert injected.provider_config.values == {
        "INJECTEDPORT": "6443",
        "INJECTEDMASTER": "192.168.255.1:6443",
        "INJECTEDCONF": "client\\n",
    }


def test_load_malformed_yaml(tmp_path):
    """Unparsable YAML is a configuration error."""
    path = tmp_path / "cluster.yml"
    path.write_text("name: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        ClusterSnapshot.load(path)


def test_pools_without_region_use_location():
    """Pools missing a region are pinned to the location at validation time."""
    snapshot = ClusterSnapshot(
        name="c",
        provider_config={"location": "nyc1"},
        pools=[
            PoolConfig(name="masters", role=PoolRole.MASTER),
            PoolConfig(name="workers", role=PoolRole.NODE, region="sfo2"),
        ],
    )

    assert [p.region for p in snapshot.pools] == ["nyc1", "sfo2"]

    drifted = snapshot.model_copy(deep=True)
    drifted.provider_config.location = "sfo2"
    assert drifted.get_pool("masters").region == "nyc1"

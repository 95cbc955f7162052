"""Data models for the cluster snapshot."""

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from pool_reconciler.exceptions import ConfigurationError


class PoolRole(str, Enum):
    """Role of a server pool within the cluster."""

    MASTER = "master"
    NODE = "node"


class SSHConfig(BaseModel):
    """SSH credentials shared by every instance of the cluster."""

    user: str = "root"
    port: int = 22
    public_key_path: str = "~/.ssh/id_rsa.pub"
    public_key_fingerprint: str = ""
    identifier: str = ""  # Provider-side id of the uploaded key

    @property
    def private_key_path(self) -> str:
        """Expanded path of the private half of ``public_key_path``."""
        path = str(Path(self.public_key_path).expanduser())
        if path.endswith(".pub"):
            path = path[: -len(".pub")]
        return path


class KubernetesAPIConfig(BaseModel):
    """Externally visible API endpoint of the cluster."""

    endpoint: str = ""
    port: str = "443"


class Components(BaseModel):
    """Optional cluster components."""

    vpn: bool = False  # Overlay network between instances


class ProviderConfig(BaseModel):
    """Provider-wide configuration of the cluster."""

    location: str = ""
    ssh: SSHConfig = Field(default_factory=SSHConfig)
    kubernetes_api: KubernetesAPIConfig = Field(default_factory=KubernetesAPIConfig)
    components: Components = Field(default_factory=Components)
    values: dict[str, str] = Field(default_factory=dict)  # Injected into bootstrap scripts


class PoolConfig(BaseModel):
    """Configuration of one homogeneous pool of instances."""

    name: str
    role: PoolRole
    kind: str = "droplet"
    identifier: str = ""
    size: str = ""
    image: str = ""
    region: str = ""
    max_count: int = 0
    bootstrap_scripts: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the pool name can be used as a provider tag."""
        if not v:
            raise ValueError("name cannot be empty")
        # Provider tags allow letters, numbers, colons, dashes and underscores
        if not re.fullmatch(r"[A-Za-z0-9:_-]+", v):
            raise ValueError(
                f"name '{v}' must contain only letters, numbers, colons, dashes and underscores"
            )
        return v

    @field_validator("max_count")
    @classmethod
    def validate_max_count(cls, v: int) -> int:
        """Validate max_count is not negative."""
        if v < 0:
            raise ValueError("max_count cannot be negative")
        return v


class ClusterSnapshot(BaseModel):
    """Full cluster configuration passed between reconciliation phases.

    Phases never mutate a snapshot they receive; they return a new one.
    """

    name: str
    provider_config: ProviderConfig = Field(default_factory=ProviderConfig)
    pools: list[PoolConfig] = Field(default_factory=list)

    @field_validator("pools")
    @classmethod
    def validate_unique_pool_names(cls, v: list[PoolConfig]) -> list[PoolConfig]:
        """Validate that no two pools share a name."""
        seen = set()
        for pool in v:
            if pool.name in seen:
                raise ValueError(f"duplicate pool name '{pool.name}'")
            seen.add(pool.name)
        return v

    @model_validator(mode="after")
    def resolve_pool_regions(self) -> "ClusterSnapshot":
        """Give pools without a region the provider location.

        Phases overwrite ``location`` as they render, so it is only read here.
        """
        location = self.provider_config.location
        self.pools = [
            pool if pool.region else pool.model_copy(update={"region": location})
            for pool in self.pools
        ]
        return self

    def get_pool(self, name: str) -> PoolConfig | None:
        """Return the pool called ``name``, if any."""
        for pool in self.pools:
            if pool.name == name:
                return pool
        return None

    def master_pool(self) -> PoolConfig:
        """Return the single master pool.

        Raises:
            ConfigurationError: If there is no master pool or more than one.
        """
        masters = [p for p in self.pools if p.role == PoolRole.MASTER]
        if not masters:
            raise ConfigurationError(
                "Unable to find master pool",
                "Exactly one pool must have role 'master' before node pools can converge.",
            )
        if len(masters) > 1:
            names = ", ".join(p.name for p in masters)
            raise ConfigurationError(
                f"Found {len(masters)} master pools: {names}",
                "Exactly one pool must have role 'master'.",
            )
        return masters[0]

    def save(self, path: str | Path) -> None:
        """Save the snapshot to a YAML file."""
        import yaml

        with open(path, "w") as f:
            yaml.safe_dump(
                self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False
            )

    @classmethod
    def load(cls, path: str | Path) -> "ClusterSnapshot":
        """Load a snapshot from a YAML file.

        Raises:
            ConfigurationError: If the file is not a YAML mapping
        """
        import yaml

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in snapshot file {path}", str(e))
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Snapshot file is empty or malformed: {path}",
                "The file must contain a YAML mapping with 'name', 'provider_config' and 'pools'.",
            )
        return cls(**data)

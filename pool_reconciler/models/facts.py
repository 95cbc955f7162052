"""Facts resolved during convergence and consumed by bootstrap scripts."""

from pydantic import BaseModel

from pool_reconciler.models.cluster import ClusterSnapshot

INJECTED_MASTER = "INJECTEDMASTER"
INJECTED_PORT = "INJECTEDPORT"
INJECTED_CONF = "INJECTEDCONF"


class ClusterFacts(BaseModel):
    """Cluster-wide facts a pool needs before its instances can boot."""

    api_port: str
    master_public_address: str = ""
    master_private_address: str = ""
    overlay_config: str | None = None  # Escaped overlay client config

    @property
    def master_endpoint(self) -> str:
        """``<private address>:<api port>`` of the master, or empty."""
        if not self.master_private_address:
            return ""
        return f"{self.master_private_address}:{self.api_port}"

    def as_values(self) -> dict[str, str]:
        """Return the facts as bootstrap injection values."""
        values = {INJECTED_PORT: self.api_port}
        if self.master_private_address:
            values[INJECTED_MASTER] = self.master_endpoint
        if self.overlay_config is not None:
            values[INJECTED_CONF] = self.overlay_config
        return values

    def inject(self, snapshot: ClusterSnapshot) -> ClusterSnapshot:
        """Return a copy of ``snapshot`` with the facts in its injection map."""
        updated = snapshot.model_copy(deep=True)
        updated.provider_config.values.update(self.as_values())
        return updated

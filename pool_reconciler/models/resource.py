"""Data models for reconciled resources and provider-side instances."""

from pydantic import BaseModel, Field


class ResourceDescription(BaseModel):
    """State of one pool as seen by a single reconciliation phase."""

    name: str = ""
    cloud_id: str = ""
    region: str = ""
    size: str = ""
    image: str = ""
    count: int = 0
    ssh_fingerprint: str = ""
    bootstrap_scripts: list[str] = Field(default_factory=list)


class ProvisionedInstance(BaseModel):
    """A compute instance as reported by the provider."""

    id: str
    name: str
    status: str = ""
    size: str = ""
    image: str = ""
    region: str = ""
    public_address: str = ""
    private_address: str = ""
    tags: list[str] = Field(default_factory=list)

    @property
    def is_initializing(self) -> bool:
        """Whether the provider is still creating the instance."""
        return self.status == "new"


class InstanceCreateSpec(BaseModel):
    """Everything the provider needs to create one instance."""

    name: str
    region: str
    size: str
    image: str
    tags: list[str]
    private_networking: bool = True
    ssh_key_id: int
    ssh_fingerprint: str = ""
    user_data: str = ""

"""Compute provider boundary and its DigitalOcean implementation."""

from typing import Any, Protocol

from azure.core.exceptions import HttpResponseError
from pydo import Client

from pool_reconciler.exceptions import ProviderQueryError
from pool_reconciler.logging_config import get_logger
from pool_reconciler.models.resource import InstanceCreateSpec, ProvisionedInstance

logger = get_logger(__name__)

PAGE_SIZE = 200


class ComputeProvider(Protocol):
    """Operations the reconciler needs from a cloud provider."""

    def list_by_tag(self, tag: str) -> list[ProvisionedInstance]: ...

    def get(self, instance_id: str) -> ProvisionedInstance: ...

    def create(self, spec: InstanceCreateSpec) -> ProvisionedInstance: ...

    def delete(self, instance_id: str) -> None: ...


def instance_from_droplet(droplet: dict[str, Any]) -> ProvisionedInstance:
    """Build a ProvisionedInstance from a droplet API payload."""
    public_address = ""
    private_address = ""
    for network in (droplet.get("networks") or {}).get("v4", []):
        if network.get("type") == "public" and not public_address:
            public_address = network.get("ip_address", "")
        elif network.get("type") == "private" and not private_address:
            private_address = network.get("ip_address", "")

    size = droplet.get("size_slug") or (droplet.get("size") or {}).get("slug", "")
    image = (droplet.get("image") or {}).get("slug") or ""

    return ProvisionedInstance(
        id=str(droplet["id"]),
        name=droplet.get("name", ""),
        status=droplet.get("status", ""),
        size=size,
        image=image,
        region=(droplet.get("region") or {}).get("slug", ""),
        public_address=public_address,
        private_address=private_address,
        tags=droplet.get("tags") or [],
    )


class DigitalOceanProvider:
    """ComputeProvider backed by the pydo DigitalOcean client."""

    def __init__(self, client: Client):
        """Initialize the provider.

        Args:
            client: Authenticated pydo client, scoped to one reconciliation session
        """
        self.client = client

    @classmethod
    def from_token(cls, token: str) -> "DigitalOceanProvider":
        """Create a provider with a freshly authenticated pydo client."""
        return cls(Client(token=token))

    def list_by_tag(self, tag: str) -> list[ProvisionedInstance]:
        """List every droplet carrying ``tag``, following pagination."""
        logger.debug(f"Listing droplets tagged {tag}")
        instances = []
        page = 1
        while True:
            try:
                response = self.client.droplets.list(tag_name=tag, per_page=PAGE_SIZE, page=page)
            except HttpResponseError as e:
                logger.error(f"Failed to list droplets for tag {tag}: {e}")
                raise ProviderQueryError(
                    f"Failed to list droplets tagged '{tag}'",
                    f"DigitalOcean API error: {e}",
                )
            droplets = response.get("droplets", [])
            instances.extend(instance_from_droplet(d) for d in droplets)

            next_page = ((response.get("links") or {}).get("pages") or {}).get("next")
            if not next_page or not droplets:
                break
            page += 1
        return instances

    def get(self, instance_id: str) -> ProvisionedInstance:
        """Fetch the current state of one droplet."""
        try:
            response = self.client.droplets.get(droplet_id=int(instance_id))
        except HttpResponseError as e:
            logger.error(f"Failed to fetch droplet {instance_id}: {e}")
            raise ProviderQueryError(
                f"Failed to fetch droplet {instance_id}",
                f"DigitalOcean API error: {e}",
            )
        return instance_from_droplet(response["droplet"])

    def create(self, spec: InstanceCreateSpec) -> ProvisionedInstance:
        """Create one droplet from ``spec``."""
        ssh_key = spec.ssh_key_id if spec.ssh_key_id else spec.ssh_fingerprint
        body = {
            "name": spec.name,
            "region": spec.region,
            "size": spec.size,
            "image": spec.image,
            "tags": spec.tags,
            "private_networking": spec.private_networking,
            "ssh_keys": [ssh_key],
            "user_data": spec.user_data,
        }
        try:
            response = self.client.droplets.create(body=body)
        except HttpResponseError as e:
            logger.error(f"Failed to create droplet {spec.name}: {e}")
            raise ProviderQueryError(
                f"Failed to create droplet '{spec.name}'",
                f"DigitalOcean API error: {e}",
            )
        return instance_from_droplet(response["droplet"])

    def delete(self, instance_id: str) -> None:
        """Delete one droplet."""
        try:
            self.client.droplets.destroy(droplet_id=int(instance_id))
        except HttpResponseError as e:
            logger.error(f"Failed to delete droplet {instance_id}: {e}")
            raise ProviderQueryError(
                f"Failed to delete droplet {instance_id}",
                f"DigitalOcean API error: {e}",
            )

"""Reconciler for pools of DigitalOcean droplets."""

import time
from collections.abc import Callable

from tenacity import RetryCallState, retry_if_result

from pool_reconciler.bootstrap import BootstrapRenderer, ScriptRenderer
from pool_reconciler.compare import is_equal
from pool_reconciler.config import ReconcilerSettings
from pool_reconciler.exceptions import PreconditionError
from pool_reconciler.locator import MasterLocator
from pool_reconciler.logging_config import get_logger
from pool_reconciler.models.cluster import ClusterSnapshot, PoolConfig, PoolRole
from pool_reconciler.models.facts import ClusterFacts
from pool_reconciler.models.resource import (
    InstanceCreateSpec,
    ProvisionedInstance,
    ResourceDescription,
)
from pool_reconciler.provider import ComputeProvider
from pool_reconciler.reconciler.base import PhaseResult
from pool_reconciler.reconciler.registry import register_reconciler
from pool_reconciler.remote import RemoteTransport
from pool_reconciler.render import render_snapshot
from pool_reconciler.retry import bounded_retrying, last_result

logger = get_logger(__name__)


@register_reconciler("droplet")
class DropletReconciler:
    """Reconciles one pool of droplets, correlated by a tag equal to the pool name."""

    kind = "droplet"

    def __init__(
        self,
        pool: PoolConfig,
        provider: ComputeProvider,
        renderer: ScriptRenderer | None = None,
        transport: RemoteTransport | None = None,
        settings: ReconcilerSettings | None = None,
        locator: MasterLocator | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the reconciler.

        Args:
            pool: Pool this reconciler is responsible for
            provider: Provider client for the reconciliation session
            renderer: Bootstrap payload renderer
            transport: Remote transport, needed for overlay networking
            settings: Retry bounds and remote paths
            locator: Master locator; built from the other arguments if omitted
            sleep: Blocking sleep used between retries
            clock: Monotonic clock compared against deadlines
        """
        self.pool = pool
        self.provider = provider
        self.settings = settings or ReconcilerSettings()
        self.renderer = renderer or BootstrapRenderer(self.settings.bootstrap_dir)
        self.sleep = sleep
        self.clock = clock
        self.locator = locator or MasterLocator(
            provider, transport, self.settings, sleep=sleep, clock=clock
        )

    def observe(self, snapshot: ClusterSnapshot) -> PhaseResult:
        """Describe the pool as it exists at the provider.

        Size, image and id come from one sampled instance; name, count,
        region, scripts and fingerprint come from the pool configuration.

        Raises:
            ProviderQueryError: If the tag query fails
        """
        logger.debug(f"{self.pool.name}: observe")
        actual = ResourceDescription(name=self.pool.name, cloud_id=self.pool.identifier)

        instances = self.provider.list_by_tag(self.pool.name)
        if instances:
            # Heterogeneous pools are not detected, only counted
            sample = instances[0]
            actual.count = len(instances)
            actual.name = sample.name
            actual.cloud_id = sample.id
            actual.size = sample.size
            actual.image = sample.image
            actual.region = sample.region
        logger.debug(f"{self.pool.name}: found {len(instances)} droplets")

        actual.bootstrap_scripts = list(self.pool.bootstrap_scripts)
        actual.ssh_fingerprint = snapshot.provider_config.ssh.public_key_fingerprint
        actual.name = self.pool.name
        actual.count = self.pool.max_count
        actual.region = self._region(snapshot)

        return PhaseResult(self._render(actual, snapshot), actual)

    def plan(self, snapshot: ClusterSnapshot) -> PhaseResult:
        """Describe the pool as configured. Never calls the provider."""
        logger.debug(f"{self.pool.name}: plan")
        expected = ResourceDescription(
            name=self.pool.name,
            cloud_id=self.pool.identifier,
            size=self.pool.size,
            region=self._region(snapshot),
            image=self.pool.image,
            count=self.pool.max_count,
            ssh_fingerprint=snapshot.provider_config.ssh.public_key_fingerprint,
            bootstrap_scripts=list(self.pool.bootstrap_scripts),
        )
        return PhaseResult(self._render(expected, snapshot), expected)

    def converge(
        self,
        actual: ResourceDescription,
        expected: ResourceDescription,
        snapshot: ClusterSnapshot,
        deadline: float | None = None,
    ) -> PhaseResult:
        """Create the droplets ``expected`` describes, unless ``actual`` already matches.

        Creation is sequential and aborts on the first failure; droplets
        created before the failure are left running.

        Raises:
            MasterUnavailableError: If a node pool cannot find its master
            PreconditionError: If the SSH key identifier is not numeric
            ProviderQueryError: If a droplet cannot be created
        """
        logger.debug(f"{self.pool.name}: converge")
        if is_equal(actual, expected):
            logger.debug(f"{self.pool.name}: already converged")
            return PhaseResult(snapshot, expected)

        provider_config = snapshot.provider_config
        if self.pool.role == PoolRole.NODE:
            facts = self.locator.locate(snapshot, deadline=deadline)
        else:
            facts = ClusterFacts(api_port=provider_config.kubernetes_api.port)

        working = facts.inject(snapshot)
        user_data = self.renderer.render(expected.bootstrap_scripts, working).decode()
        ssh_key_id = self._ssh_key_id(working)

        created: ProvisionedInstance | None = None
        for index in range(expected.count):
            spec = InstanceCreateSpec(
                name=f"{expected.name}-{index}",
                region=expected.region,
                size=expected.size,
                image=expected.image,
                tags=[expected.name],
                private_networking=True,
                ssh_key_id=ssh_key_id,
                ssh_fingerprint=expected.ssh_fingerprint,
                user_data=user_data,
            )
            created = self.provider.create(spec)
            logger.info(f"Created droplet [{created.id}] {spec.name}")

        if created is None:
            applied = expected.model_copy(deep=True)
        else:
            applied = ResourceDescription(
                name=self.pool.name,
                cloud_id=created.id,
                image=created.image or expected.image,
                size=created.size or expected.size,
                region=created.region or expected.region,
                count=expected.count,
                bootstrap_scripts=list(expected.bootstrap_scripts),
            )

        # Empty for master pools, clearing the address of any previous master
        new_endpoint = facts.master_public_address
        endpoint = working.provider_config.kubernetes_api.endpoint
        if endpoint and endpoint != new_endpoint:
            logger.info(f"API endpoint changed from {endpoint} to {new_endpoint or 'none'}")
        working.provider_config.kubernetes_api.endpoint = new_endpoint

        return PhaseResult(self._render(applied, working), applied)

    def destroy(
        self,
        actual: ResourceDescription,
        snapshot: ClusterSnapshot,
        deadline: float | None = None,
    ) -> PhaseResult:
        """Delete every droplet tagged with ``actual.name``.

        A listing whose count disagrees with ``actual.count`` is re-queried
        up to the delete bound, after which the last listing is used anyway.

        Raises:
            PreconditionError: If ``actual`` has no name to correlate by
            ProviderQueryError: If listing, polling or deleting fails
        """
        logger.debug(f"{self.pool.name}: destroy")
        if not actual.name:
            raise PreconditionError(
                "Unable to delete droplet resource without Name",
                "The observed resource must carry the pool name used as its tag.",
            )

        instances = self._list_for_delete(actual, deadline)
        for instance in instances:
            instance = self._wait_until_created(instance, deadline)
            self.provider.delete(instance.id)
            logger.info(f"Deleted droplet [{instance.id}] {instance.name}")

        cleared = snapshot.model_copy(deep=True)
        cleared.provider_config.kubernetes_api.endpoint = ""

        deleted = ResourceDescription(
            name=actual.name,
            image=actual.image,
            size=actual.size,
            count=actual.count,
            region=actual.region,
            ssh_fingerprint=actual.ssh_fingerprint,
            bootstrap_scripts=list(actual.bootstrap_scripts),
        )
        return PhaseResult(self._render(deleted, cleared), deleted)

    def _list_for_delete(
        self, actual: ResourceDescription, deadline: float | None
    ) -> list[ProvisionedInstance]:
        def log_mismatch(retry_state: RetryCallState) -> None:
            found = len(retry_state.outcome.result())
            logger.info(f"Droplet count mis-match ({found}/{actual.count}), trying query again")

        retrying = bounded_retrying(
            self.settings.delete_attempts + 1,
            self.settings.delete_count_interval,
            deadline,
            sleep=self.sleep,
            clock=self.clock,
            retry=retry_if_result(lambda instances: len(instances) != actual.count),
            before_sleep=log_mismatch,
            retry_error_callback=last_result,
        )
        instances = retrying(self.provider.list_by_tag, actual.name)
        if len(instances) != actual.count:
            logger.warning(
                f"{actual.name}: expected {actual.count} droplets, found {len(instances)}; "
                "deleting what was found"
            )
        return instances

    def _wait_until_created(
        self, instance: ProvisionedInstance, deadline: float | None
    ) -> ProvisionedInstance:
        retrying = bounded_retrying(
            self.settings.delete_attempts + 1,
            self.settings.delete_interval,
            deadline,
            sleep=self.sleep,
            clock=self.clock,
            retry=retry_if_result(lambda current: current.is_initializing),
            retry_error_callback=last_result,
        )
        # The first attempt checks the listed status; later ones re-fetch it
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.debug(f"Waiting for Droplet creation to finish [{instance.id}]...")
                    instance = self.provider.get(instance.id)
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(instance)
        return instance

    def _region(self, snapshot: ClusterSnapshot) -> str:
        return self.pool.region or snapshot.provider_config.location

    def _ssh_key_id(self, snapshot: ClusterSnapshot) -> int:
        identifier = snapshot.provider_config.ssh.identifier
        try:
            return int(identifier)
        except ValueError:
            raise PreconditionError(
                f"Invalid SSH key identifier '{identifier}'",
                "provider_config.ssh.identifier must be the numeric id of the uploaded key.",
            ) from None

    def _render(self, resource: ResourceDescription, snapshot: ClusterSnapshot) -> ClusterSnapshot:
        return render_snapshot(resource, snapshot, self.pool.role, kind=self.kind)

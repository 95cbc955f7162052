"""Locating the master pool's live addresses for a converging node pool."""

import logging
import time
from collections.abc import Callable

from tenacity import RetryError, before_sleep_log, retry_if_exception_type

from pool_reconciler.config import ReconcilerSettings
from pool_reconciler.exceptions import (
    AmbiguityError,
    MasterUnavailableError,
    PreconditionError,
    ProviderQueryError,
    RemoteTransportError,
)
from pool_reconciler.logging_config import get_logger
from pool_reconciler.models.cluster import ClusterSnapshot
from pool_reconciler.models.facts import ClusterFacts
from pool_reconciler.models.resource import ProvisionedInstance
from pool_reconciler.provider import ComputeProvider
from pool_reconciler.remote import RemoteSession, RemoteTransport
from pool_reconciler.retry import bounded_retrying

logger = get_logger(__name__)


class _MasterPendingError(Exception):
    """Master not reachable yet - retry."""


class MasterLocator:
    """Bounded polling for the master instance's addresses.

    Masters may still be booting when node pools converge, so empty listings,
    missing public addresses and unreachable SSH are retried with a fixed
    delay. Configuration problems, ambiguous masters and a master without a
    private address fail immediately.
    """

    def __init__(
        self,
        provider: ComputeProvider,
        transport: RemoteTransport | None = None,
        settings: ReconcilerSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.transport = transport
        self.settings = settings or ReconcilerSettings()
        self.sleep = sleep
        self.clock = clock

    def locate(self, snapshot: ClusterSnapshot, deadline: float | None = None) -> ClusterFacts:
        """Resolve the master's addresses and, with overlay enabled, its overlay config.

        Args:
            snapshot: Current cluster snapshot
            deadline: Optional ``clock()`` value after which no further attempt is made

        Returns:
            Facts for bootstrapping node instances

        Raises:
            ConfigurationError: If the snapshot has no single master pool
            AmbiguityError: If more than one instance carries the master tag
            PreconditionError: If the master has no private address
            RemoteTransportError: If the overlay SSH session cannot be closed
            MasterUnavailableError: If the attempt bound or deadline is exhausted
        """
        master_tag = snapshot.master_pool().name
        attempts = self.settings.master_attempts
        interval = self.settings.master_interval

        retrying = bounded_retrying(
            attempts,
            interval,
            deadline,
            sleep=self.sleep,
            clock=self.clock,
            retry=retry_if_exception_type(_MasterPendingError),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        )
        try:
            facts = retrying(self._attempt, master_tag, snapshot)
        except RetryError as e:
            raise MasterUnavailableError(
                f"Unable to find master IP for {master_tag} after defined wait",
                f"Tried {e.last_attempt.attempt_number} of up to {attempts} times, "
                f"{interval}s apart. "
                "Check that the master pool has converged and its instances are running.",
            ) from e

        logger.info(f"Found master {master_tag} at {facts.master_public_address}")
        return facts

    def _attempt(self, master_tag: str, snapshot: ClusterSnapshot) -> ClusterFacts:
        logger.debug(f"Looking for master {master_tag}")
        try:
            instances = self.provider.list_by_tag(master_tag)
        except ProviderQueryError as e:
            raise _MasterPendingError(f"Hanging for master IP.. ({e.message})") from e

        if not instances:
            raise _MasterPendingError("Hanging for master IP..")
        if len(instances) > 1:
            raise AmbiguityError(
                f"Found [{len(instances)}] instances for master tag [{master_tag}]",
                "A master pool must run exactly one instance to be located.",
            )

        master = instances[0]
        if not master.public_address:
            raise _MasterPendingError("Hanging for master public IP..")

        provider_config = snapshot.provider_config
        facts = ClusterFacts(
            api_port=provider_config.kubernetes_api.port,
            master_public_address=master.public_address,
        )

        if not provider_config.components.vpn:
            logger.info("Waiting for private IP address...")
            if not master.private_address:
                raise PreconditionError(
                    f"Unable to detect private IP of master {master.name}",
                    "Private networking must be enabled on master instances.",
                )
            facts.master_private_address = master.private_address
            return facts

        logger.info("Setting up overlay network... this could take a little bit longer...")
        facts.master_private_address, facts.overlay_config = self._read_overlay(master, snapshot)
        return facts

    def _read_overlay(
        self, master: ProvisionedInstance, snapshot: ClusterSnapshot
    ) -> tuple[str, str]:
        """Read the overlay address and escaped client config from the master."""
        if self.transport is None:
            raise RemoteTransportError(
                "Overlay networking is enabled but no remote transport is configured"
            )

        ssh = snapshot.provider_config.ssh
        try:
            session = self.transport.connect(
                master.public_address, ssh.port, ssh.user, ssh.private_key_path
            )
        except RemoteTransportError as e:
            raise _MasterPendingError(f"Hanging for SSH on master.. ({e.message})") from e

        try:
            address = _read_text(session, self.settings.overlay_address_path)
            config = _read_text(session, self.settings.overlay_config_path)
        except RemoteTransportError as e:
            _close_quietly(session)
            raise _MasterPendingError(f"Hanging for overlay files.. ({e.message})") from e
        except Exception:
            _close_quietly(session)
            raise

        # Raises RemoteTransportError, which is fatal here
        session.close()
        return address.replace("\n", ""), config.replace("\n", "\\n")


def _read_text(session: RemoteSession, path: str) -> str:
    data = session.read_file(path)
    try:
        return data.decode()
    except UnicodeDecodeError as e:
        raise RemoteTransportError(f"{path} on master is not valid UTF-8", str(e)) from e


def _close_quietly(session: RemoteSession) -> None:
    try:
        session.close()
    except RemoteTransportError as e:
        logger.warning(f"Failed to close SSH session: {e.message}")

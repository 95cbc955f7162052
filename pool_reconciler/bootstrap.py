"""Rendering of instance bootstrap payloads (cloud-init user data)."""

from pathlib import Path
from typing import Protocol

import requests

from pool_reconciler.exceptions import BootstrapScriptError
from pool_reconciler.logging_config import get_logger
from pool_reconciler.models.cluster import ClusterSnapshot

logger = get_logger(__name__)

CLUSTER_JSON_PATH = "/etc/pool-reconciler/cluster.json"


class ScriptRenderer(Protocol):
    """Builds the init payload for a pool's instances."""

    def render(self, script_refs: list[str], snapshot: ClusterSnapshot) -> bytes: ...


class BootstrapRenderer:
    """Concatenates bootstrap scripts behind a preamble that ships the snapshot.

    Scripts read injected values (master address, API port, overlay config)
    from the cluster JSON the preamble writes to ``CLUSTER_JSON_PATH``.
    """

    def __init__(self, bootstrap_dir: str | Path = "bootstrap", timeout: float = 30.0):
        self.bootstrap_dir = Path(bootstrap_dir)
        self.timeout = timeout

    def render(self, script_refs: list[str], snapshot: ClusterSnapshot) -> bytes:
        """Render the payload for ``script_refs``.

        Raises:
            BootstrapScriptError: If any script cannot be loaded
        """
        cluster_json = snapshot.model_dump_json(indent=2)
        parts = [
            "#!/usr/bin/env bash\n",
            f"mkdir -p {Path(CLUSTER_JSON_PATH).parent}\n",
            f"cat <<\"EOF\" > {CLUSTER_JSON_PATH}\n{cluster_json}\nEOF\n",
        ]
        for ref in script_refs:
            script = self._load(ref)
            if not script.endswith("\n"):
                script += "\n"
            parts.append(script)
        logger.debug(f"Rendered bootstrap payload from {len(script_refs)} scripts")
        return "".join(parts).encode()

    def _load(self, ref: str) -> str:
        if ref.startswith(("http://", "https://")):
            logger.debug(f"Fetching bootstrap script {ref}")
            try:
                response = requests.get(ref, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise BootstrapScriptError(f"Unable to fetch bootstrap script {ref}", str(e))
            return response.text

        path = self.bootstrap_dir / ref
        try:
            return path.read_text()
        except OSError as e:
            raise BootstrapScriptError(
                f"Unable to read bootstrap script {ref}",
                f"{e}\n\nExpected location: {path.absolute()}",
            )

"""DigitalOcean droplet fleet probe (API v2).

Lists every droplet (optionally only those carrying a tag), following the
API's pagination, and counts the ones that are not ``active``. Limits are
counts or percentages of the fleet.
"""

from typing import Any, Dict, List, Optional

import structlog

from device_probes.aggregation import ResultAggregator, SumPolicy
from device_probes.config import ProbeSettings
from device_probes.exceptions import MalformedResponse, MissingCredential
from device_probes.models import MetricValue, Verdict
from device_probes.probes.base import Probe
from device_probes.probes.registry import ProbeRegistry
from device_probes.sources import HttpSource

logger = structlog.get_logger(__name__)

DROPLETS_PATH = "/v2/droplets"
PAGE_SIZE = 200
# Pagination guard against a misbehaving API
MAX_PAGES = 100


@ProbeRegistry.register
class DropletsProbe(Probe):
    """Offline droplets in a DigitalOcean account."""

    name = "droplets"
    description = "DigitalOcean droplets that are not active"

    def __init__(self, settings: ProbeSettings, source: Optional[HttpSource] = None) -> None:
        super().__init__(settings)
        self._source = source

    @property
    def source(self) -> HttpSource:
        if self._source is None:
            if not self.settings.api_token:
                raise MissingCredential(
                    "The droplets probe needs an API token",
                    hint="Set PROBE_API_TOKEN (or PROBE_API_TOKEN_FILE) to a read-only token.",
                )
            port = f":{self.settings.port}" if self.settings.port else ""
            self._source = HttpSource(
                f"https://{self.settings.host}{port}",
                verify=self.settings.verify_ssl,
                timeout=self.settings.timeout,
                retries=self.settings.retries,
                headers={"Authorization": f"Bearer {self.settings.api_token}"},
            )
        return self._source

    def list_droplets(self) -> List[Dict[str, Any]]:
        """All droplets, following ``links.pages.next``."""
        params: Dict[str, Any] = {"per_page": PAGE_SIZE}
        if self.settings.tag:
            params["tag_name"] = self.settings.tag

        droplets: List[Dict[str, Any]] = []
        for page in range(1, MAX_PAGES + 1):
            data = self.source.get_json(DROPLETS_PATH, params={**params, "page": page})
            if not isinstance(data, dict) or not isinstance(data.get("droplets"), list):
                raise MalformedResponse(message="Droplet listing has no 'droplets' array")

            droplets.extend(data["droplets"])
            pages = (data.get("links") or {}).get("pages") or {}
            if not pages.get("next"):
                break

        logger.debug("droplets_listed", count=len(droplets), tag=self.settings.tag)
        return droplets

    def run(self) -> Verdict:
        with self.source:
            droplets = self.list_droplets()
        if not droplets:
            scope = f" tagged '{self.settings.tag}'" if self.settings.tag else ""
            return Verdict.unknown(f"no droplets{scope} found")

        metrics = [
            MetricValue(
                name=str(droplet.get("name", droplet.get("id", "droplet"))),
                raw_value="0" if droplet.get("status") == "active" else "1",
            )
            for droplet in droplets
        ]
        offline = [m.name for m in metrics if m.raw_value == "1"]

        policy = SumPolicy(
            warning=self.warning_limit(),
            critical=self.critical_limit(),
            total=float(len(metrics)),
            detail_perfdata=False,
        )
        verdict = ResultAggregator(policy, label="offline_droplets").aggregate(metrics)
        if offline:
            verdict = verdict.with_message(f"{verdict.message}: {', '.join(offline)}")
        return verdict

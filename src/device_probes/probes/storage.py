"""HPE MSA storage array probe (XML management API).

Login hashes ``user_password`` with SHA-256 and trades it for a session
key, which is cached on disk for 1500 seconds. A session the array no
longer accepts is dropped and the login repeated once.

Modes:
    health   Worst health of controllers, drives, power supplies and fans.
    sensors  Average of the enclosure temperature sensors.
"""

import hashlib
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

import structlog

from device_probes.aggregation import AveragePolicy, ResultAggregator, worst_of
from device_probes.config import ProbeSettings
from device_probes.exceptions import AuthFailure, MalformedResponse, NotFound, ProbeError
from device_probes.models import MetricValue, PerfData, Status, Verdict
from device_probes.probes.base import Probe
from device_probes.probes.registry import ProbeRegistry
from device_probes.sources import HttpSource, TicketCache, cache_key

logger = structlog.get_logger(__name__)

STORAGE_TICKET_TTL = 1500

# health-numeric as reported by the array
HEALTH_STATES: Dict[int, Status] = {
    0: Status.OK,
    1: Status.WARNING,
    2: Status.CRITICAL,
    3: Status.UNKNOWN,
    4: Status.OK,
}

HEALTH_COMMANDS = ("controllers", "disks", "power-supplies", "fans")


def parse_xml(text: str) -> ET.Element:
    """Parse an API response body."""
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedResponse(message=f"Array returned invalid XML: {e}") from e


def object_properties(obj: ET.Element) -> Dict[str, str]:
    """PROPERTY children of an OBJECT as a name/text dict."""
    return {
        prop.get("name", ""): (prop.text or "").strip()
        for prop in obj.findall("PROPERTY")
    }


def objects_with(root: ET.Element, property_name: str) -> List[Dict[str, str]]:
    """Properties of every OBJECT carrying ``property_name``."""
    return [
        props
        for props in (object_properties(obj) for obj in root.iter("OBJECT"))
        if property_name in props
    ]


def response_status(root: ET.Element) -> Dict[str, str]:
    """Properties of the trailing status OBJECT, empty if there is none."""
    for obj in root.iter("OBJECT"):
        if obj.get("basetype") == "status":
            return object_properties(obj)
    return {}


@ProbeRegistry.register
class StorageProbe(Probe):
    """Health and temperature of an HPE MSA array."""

    name = "storage"
    description = "HPE MSA storage array (modes: health, sensors)"
    modes = ("health", "sensors")

    def __init__(
        self,
        settings: ProbeSettings,
        source: Optional[HttpSource] = None,
        cache: Optional[TicketCache] = None,
    ) -> None:
        super().__init__(settings)
        self._source = source
        self.cache = cache or TicketCache(
            settings.cache_dir,
            ttl=settings.ticket_ttl or STORAGE_TICKET_TTL,
        )

    @property
    def source(self) -> HttpSource:
        if self._source is None:
            port = self.settings.port or 443
            self._source = HttpSource(
                f"https://{self.settings.host}:{port}",
                verify=self.settings.verify_ssl,
                timeout=self.settings.timeout,
                retries=self.settings.retries,
            )
        return self._source

    @property
    def _cache_key(self) -> str:
        return cache_key(
            "storage",
            self.settings.host,
            self.settings.port,
            self.settings.username,
            self.settings.password,
        )

    def run(self) -> Verdict:
        if not self.settings.username or not self.settings.password:
            raise ProbeError(
                message="The storage probe needs a user name and password",
                hint="Pass --username/--password or set PROBE_USERNAME and PROBE_PASSWORD.",
            )
        with self.source:
            if self.mode == "sensors":
                return self._sensors()
            return self._health()

    def _login(self) -> str:
        digest = hashlib.sha256(
            f"{self.settings.username}_{self.settings.password}".encode("utf-8")
        ).hexdigest()
        root = parse_xml(self.source.request("GET", f"/api/login/{digest}").text)

        element = root.find("./OBJECT/PROPERTY[@name='response']")
        session_key = (element.text or "").strip() if element is not None else ""
        if not session_key:
            raise MalformedResponse(message="Login response carries no session key")
        if session_key.lower() == "authentication unsuccessful":
            raise AuthFailure(
                message=f"Login to {self.settings.host} failed",
                hint="Please verify host address and login details.",
            )
        logger.debug("storage_login_complete", host=self.settings.host)
        return session_key

    def _session_key(self) -> str:
        ticket = self.cache.get(self._cache_key)
        if ticket is not None:
            return ticket.token
        return self.cache.put(self._cache_key, self._login()).token

    def _show_once(self, command: str) -> ET.Element:
        response = self.source.request(
            "GET", f"/api/show/{command}", headers={"sessionKey": self._session_key()}
        )
        root = parse_xml(response.text)
        status = response_status(root)
        if status.get("response-type-numeric", "0") != "0" and (
            "session" in status.get("response", "").lower()
        ):
            raise AuthFailure(message=f"Session rejected: {status.get('response')}")
        return root

    def show(self, command: str) -> ET.Element:
        """Run ``show <command>`` with the cached session.

        A rejected session key is invalidated and the request repeated once
        with a fresh login.
        """
        try:
            return self._show_once(command)
        except AuthFailure:
            self.cache.invalidate(self._cache_key)
            logger.info("storage_session_rejected", host=self.settings.host, command=command)

        try:
            return self._show_once(command)
        except AuthFailure:
            self.cache.invalidate(self._cache_key)
            raise

    def _health(self) -> Verdict:
        statuses: List[Status] = []
        problems: List[str] = []
        total = 0

        for command in HEALTH_COMMANDS:
            try:
                root = self.show(command)
            except NotFound:
                logger.debug("storage_command_unsupported", command=command)
                continue
            for props in objects_with(root, "health-numeric"):
                total += 1
                name = props.get("durable-id") or props.get("name") or command
                try:
                    status = HEALTH_STATES.get(int(props["health-numeric"]), Status.UNKNOWN)
                except ValueError:
                    status = Status.UNKNOWN
                statuses.append(status)
                if status != Status.OK:
                    reason = props.get("health-reason") or props.get("health", "")
                    problems.append(f"{name} {status.value.lower()}" + (f" ({reason})" if reason else ""))

        if not total:
            return Verdict.unknown("no components reported a health state")

        status = worst_of(statuses)
        message = f"all {total} components OK" if not problems else ", ".join(problems)
        perfdata = (
            PerfData(name="components", value=total),
            PerfData(name="degraded", value=len(problems)),
        )
        return Verdict(status=status, message=message, perfdata=perfdata)

    def _sensors(self) -> Verdict:
        root = self.show("sensor-status")
        metrics = [
            MetricValue(name=props.get("sensor-name", "sensor"), raw_value=props.get("value"), uom="C")
            for props in objects_with(root, "sensor-type")
            if props["sensor-type"].lower().startswith("temperature")
        ]
        policy = AveragePolicy(warning=self.warning_range(), critical=self.critical_range())
        return ResultAggregator(policy, label="temperature").aggregate(metrics)

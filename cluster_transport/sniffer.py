"""Cluster discovery through the nodes-info endpoint."""

from typing import TYPE_CHECKING, List

from .connection import HostAddress
from .errors import TransportError
from .response import RequestMethod, Response

if TYPE_CHECKING:
    from .transport import Transport

NODES_PATH = "_nodes/http"


class Sniffer:
    """Asks the cluster, through the transport itself, which nodes it has."""

    def __init__(self, transport: "Transport"):
        self._transport = transport

    def hosts(self) -> List[HostAddress]:
        """
        Return the published addresses of the cluster's nodes.

        Best effort: a failed request or malformed payload yields an empty
        list, and entries without a parsable address are skipped.
        """
        result = self._transport.request(RequestMethod.GET, NODES_PATH)
        if not isinstance(result, Response):
            self._transport.log(f"[Sniffer] Discovery request failed: {result.message}")
            return []

        try:
            payload = result.json()
        except TransportError as exc:
            self._transport.log(f"[Sniffer] Discovery response is not JSON: {exc.message}")
            return []

        nodes = payload.get("nodes") if isinstance(payload, dict) else None
        if not isinstance(nodes, dict):
            self._transport.log("[Sniffer] Discovery response has no 'nodes' map")
            return []

        scheme = self._transport.scheme
        field = f"{scheme}_address"
        hosts = []
        for node_id, data in nodes.items():
            if not isinstance(data, dict):
                continue
            address = data.get(field)
            # Newer clusters nest the address under the protocol section.
            if address is None and isinstance(data.get(scheme), dict):
                address = data[scheme].get("publish_address")
            if not isinstance(address, str):
                continue
            try:
                hosts.append(HostAddress.parse(address, default_scheme=scheme))
            except ValueError as exc:
                self._transport.log(f"[Sniffer] Skipping node {node_id}: {exc}")
        return hosts

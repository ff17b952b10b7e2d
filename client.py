import json
import sys
from typing import Optional

from cluster_transport import ClusterConfig, Response, Transport, TransportError, TransportSettings


def _open_transport(host: str, port: int) -> Transport:
    return Transport(
        hosts=[f"{host}:{port}"],
        settings=TransportSettings(reload_after=0),
        verbose=False,
    )


def _open_from_config(config_path: str) -> Transport:
    config = ClusterConfig(config_path)
    return Transport(
        hosts=config.hosts,
        scheme=config.scheme,
        settings=config.get_settings(),
        verbose=False,
    )


def print_result(result, pretty: bool = True) -> int:
    if isinstance(result, Response):
        print(f"Status: {result.status}")
        if result.has_body:
            try:
                print(json.dumps(result.json(), indent=2 if pretty else None))
            except TransportError:
                print(result.text)
        return 0

    print(f"Error [{result.kind.value}]: {result.message}")
    if result.status is not None:
        print(f"Status: {result.status}")
    if result.body is not None:
        print(result.body if isinstance(result.body, (bytes, str)) else json.dumps(result.body, indent=2))
    return 1


def send_request(transport: Transport, method: str, path: str, body: Optional[str] = None) -> int:
    try:
        result = transport.request(method, path, body=body)
        return print_result(result)
    finally:
        for line in transport.recent_logs():
            print(f"  log: {line}")
        transport.close()


def show_nodes(transport: Transport) -> int:
    try:
        hosts = transport.sniff_connections()
        print(f"Discovered {len(hosts)} hosts:")
        for host in hosts:
            print(f" {host.url}")
        return 0
    finally:
        transport.close()


def usage() -> None:
    print("Usage: python client.py <host> <port> [health|nodes|request METHOD PATH [BODY]]")
    print("       python client.py --config <cluster.json> request METHOD PATH [BODY]")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        usage()
        sys.exit(1)

    if sys.argv[1] == "--config":
        transport_arg = _open_from_config(sys.argv[2])
    else:
        transport_arg = _open_transport(sys.argv[1], int(sys.argv[2]))
    command = sys.argv[3] if len(sys.argv) > 3 else "health"

    if command == "health":
        sys.exit(send_request(transport_arg, "GET", "_cluster/health"))
    elif command == "nodes":
        sys.exit(show_nodes(transport_arg))
    elif command == "request":
        if len(sys.argv) < 6:
            print("request command expects: <METHOD> <PATH> [BODY]")
            transport_arg.close()
            sys.exit(1)
        body_arg = sys.argv[6] if len(sys.argv) > 6 else None
        sys.exit(send_request(transport_arg, sys.argv[4], sys.argv[5], body_arg))
    else:
        usage()
        transport_arg.close()
        sys.exit(1)

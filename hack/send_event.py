"""Send a change or reconcile event to a running famchat.

Development helper that POSTs to /api/v1/events.
"""

import argparse
import http.client
import json
import sys
from typing import Any


def create_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(description="Send an event to famchat")
    parser.add_argument("-H", "--host", default="localhost", help="Server host")
    parser.add_argument("-p", "--port", type=int, default=8080, help="Server port")
    parser.add_argument(
        "-d", "--delay", type=int, default=0, help="Delay in seconds (default: 0)"
    )
    subparsers = parser.add_subparsers(dest="type", required=True)

    subparsers.add_parser("reconcile", help="Remove duplicate group threads")

    change = subparsers.add_parser("change", help="Publish a row change")
    change.add_argument("--table", required=True, help="Table name, e.g. chat_messages")
    change.add_argument(
        "--action",
        default="INSERT",
        choices=["INSERT", "UPDATE", "DELETE"],
        help="Change kind (default: INSERT)",
    )
    change.add_argument("--record", required=True, help="Row as a JSON object")
    return parser


def build_body(args: argparse.Namespace) -> dict[str, Any]:
    """Build the request body from parsed arguments."""
    body: dict[str, Any] = {"type": args.type, "delay": args.delay}
    if args.type == "change":
        body["payload"] = {
            "table": args.table,
            "action": args.action,
            "record": json.loads(args.record),
        }
    return body


def send_event(host: str, port: int, body: dict[str, Any]) -> tuple[bool, str]:
    """POST one event.

    Returns:
        (success, event id or error message)
    """
    try:
        conn = http.client.HTTPConnection(host, port, timeout=30)
        try:
            conn.request(
                "POST",
                "/api/v1/events",
                body=json.dumps(body),
                headers={"Content-Type": "application/json"},
            )
            response = conn.getresponse()
            text = response.read().decode("utf-8")
            if response.status != 200:
                return False, f"{response.status} {response.reason}: {text}"
            try:
                return True, json.loads(text).get("event_id", "unknown")
            except json.JSONDecodeError:
                return False, f"Invalid JSON response: {text}"
        finally:
            conn.close()
    except ConnectionRefusedError:
        return False, "Connection refused"
    except TimeoutError:
        return False, "Connection timeout"
    except OSError as e:
        return False, str(e)


def main() -> int:
    """Main entry point."""
    args = create_parser().parse_args()
    try:
        body = build_body(args)
    except json.JSONDecodeError as e:
        print(f"Error: --record is not valid JSON: {e}")
        return 1

    success, message = send_event(args.host, args.port, body)
    if not success:
        print(f"Error: {message}")
        return 1
    print(f"Event ID: {message}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

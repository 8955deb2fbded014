import argparse
import base64
import json
import sys

from ._config import load_client_config
from .builder import RequestBuilder
from .network import NetworkManager


def _parse_pairs(values: list[str] | None, separator: str, label: str) -> list[tuple[str, str]]:
    pairs = []
    for raw in values or []:
        key, found, value = raw.partition(separator)
        if not found or not key.strip():
            raise ValueError(f"Invalid {label} '{raw}'. Expected KEY{separator}VALUE")
        pairs.append((key.strip(), value.strip()))
    return pairs


def build_request(args, manager: NetworkManager) -> RequestBuilder:
    """Translate parsed command line arguments into a configured builder."""
    builder = RequestBuilder(args.method, args.url, manager)

    for key, value in _parse_pairs(args.header, ":", "header"):
        builder.header(key, value)
    for key, value in _parse_pairs(args.query, "=", "query parameter"):
        builder.query_param(key, value)
    for key, value in _parse_pairs(args.path, "=", "path parameter"):
        builder.path_param(key, value)

    if args.json:
        builder.json_content()
    if args.content_type:
        builder.content_type(args.content_type)
    if args.body is not None:
        builder.body(args.body)
    if args.timeout is not None:
        builder.timeout(args.timeout)
    if args.basic_auth:
        username, _, password = args.basic_auth.partition(":")
        builder.basic_auth(username, password)
    return builder


def cmd_request(args):
    """Handle request subcommand."""
    try:
        config = load_client_config(file_path=args.config)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)
        return

    manager = NetworkManager(config)
    try:
        builder = build_request(args, manager)
        if args.output == "json":
            response = builder.get_as_json_map()
            data = response.response_data
        elif args.output == "bytes":
            response = builder.get_as_bytes()
            raw = response.response_data or b""
            data = base64.b64encode(raw).decode("ascii")
        else:
            response = builder.get_as_string()
            data = response.response_data
    except ValueError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        sys.exit(2)
        return
    finally:
        manager.shutdown()

    result = {
        "response_code": response.response_code,
        "response_error_message": response.response_error_message,
        "data": data,
    }
    print(json.dumps(result))

    if response.is_ok:
        print(f"{args.method.upper()} {builder.url} returned {response.response_code}.", file=sys.stderr)
        sys.exit(0)
    else:
        print(f"{args.method.upper()} {builder.url} failed with {response.response_code}.", file=sys.stderr)
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Fluent HTTP request builder CLI")
    subparsers = parser.add_subparsers(dest="command", help="Subcommand to run")

    request_parser = subparsers.add_parser("request", help="Execute an HTTP request")
    request_parser.add_argument("method", help="HTTP method, e.g. GET or POST")
    request_parser.add_argument("url", help="Request url, may contain {name} path placeholders")
    request_parser.add_argument("--header", action="append", help="Request header KEY:VALUE (repeatable)")
    request_parser.add_argument("--query", action="append", help="Query parameter KEY=VALUE (repeatable)")
    request_parser.add_argument("--path", action="append", help="Path parameter KEY=VALUE (repeatable)")
    request_parser.add_argument("--body", help="Raw request body")
    request_parser.add_argument("--content-type", dest="content_type", help="Request content type")
    request_parser.add_argument("--timeout", type=int, help="Timeout in milliseconds")
    request_parser.add_argument("--json", action="store_true", help="Send and accept application/json")
    request_parser.add_argument("--basic-auth", dest="basic_auth", help="Basic authentication USER:PASS")
    request_parser.add_argument(
        "--as",
        dest="output",
        choices=["string", "bytes", "json"],
        default="string",
        help="How to read the response body (default: string)",
    )
    request_parser.add_argument("--config", help="Path to a JSON client config file")

    args = parser.parse_args()

    if args.command == "request":
        cmd_request(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import json

from storefront.core.config import get_settings
from storefront.core.logging import configure_logging
from storefront.core.security import create_access_token
from storefront.domain.orders.queries import list_orders
from storefront.domain.orders.status import OrderStatus
from storefront.persistence.pg import init_db, session_scope


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storefront orders CLI")
    top = parser.add_subparsers(dest="command", required=True)

    db = top.add_parser("db", help="Database operations")
    db_sub = db.add_subparsers(dest="db_command", required=True)
    db_sub.add_parser("init", help="Create tables")

    token = top.add_parser("token", help="Access tokens")
    token_sub = token.add_subparsers(dest="token_command", required=True)
    issue = token_sub.add_parser("issue", help="Issue a signed access token")
    issue.add_argument("--user-id", required=True)
    issue.add_argument("--role", choices=["customer", "admin"], default="customer")
    issue.add_argument("--ttl", type=int, default=None, help="Lifetime in seconds (default: settings)")

    orders = top.add_parser("orders", help="Order queries")
    orders_sub = orders.add_subparsers(dest="orders_command", required=True)
    ls = orders_sub.add_parser("list", help="List orders newest first")
    ls.add_argument("--user-id", default=None)
    ls.add_argument("--status", choices=[s.value for s in OrderStatus], default=None)
    ls.add_argument("--page", type=int, default=1)
    ls.add_argument("--limit", type=int, default=None)

    serve = top.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    return parser


def _list_orders(args: argparse.Namespace) -> int:
    settings = get_settings()
    init_db()
    limit = args.limit or settings.admin_orders_page_size
    status = OrderStatus(args.status) if args.status else None
    with session_scope() as session:
        page = list_orders(session, args.user_id, page=max(1, args.page), limit=max(1, limit), status=status)
    print(json.dumps(page, ensure_ascii=False, indent=2))
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefront.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "db" and args.db_command == "init":
        init_db()
        print("tables created")
        return 0
    if args.command == "token" and args.token_command == "issue":
        print(create_access_token(args.user_id, role=args.role, ttl_seconds=args.ttl))
        return 0
    if args.command == "orders" and args.orders_command == "list":
        return _list_orders(args)
    if args.command == "serve":
        return _serve(args)

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())

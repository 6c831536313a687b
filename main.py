#!/usr/bin/env python3
"""
Storefront API -- user management and product catalog over HTTP.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py serve --reload
  python main.py init-db
  python main.py init-db --no-seed

Environment variables (see core/config.py for the full list):
  DATABASE_URL            SQLAlchemy URL. Defaults to storefront.db next to this file.
  SEED_DEMO_DATA          Insert demo users and products into empty tables (default: true).
  TOKEN_MAX_AGE_SECONDS   Bearer token lifetime (default: 86400).
"""

import argparse
import sys

from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def _init_db(args: argparse.Namespace) -> int:
    """Create the schema and optionally seed demo rows, then exit."""
    from auth.store import UserStore
    from auth.tokens import hash_password
    from catalog.store import ProductStore
    from core.database import create_db_engine

    settings = get_settings()
    engine = create_db_engine(settings.database_url)
    try:
        user_store = UserStore(engine)
        product_store = ProductStore(engine)
        print(f"Schema ready at {engine.url.render_as_string(hide_password=True)}")
        if not args.no_seed:
            users = user_store.seed_demo_users(hash_password)
            products = product_store.seed_demo_products()
            print(f"Demo data: {users} user(s), {products} product(s) inserted.")
    finally:
        engine.dispose()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront API: users, products and token authentication.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve
  python main.py serve --port 8080 --reload
  python main.py init-db --no-seed
""",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=3000, help="Port to listen on (default: 3000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    init_db = sub.add_parser("init-db", help="Create the database schema and exit")
    init_db.add_argument("--no-seed", action="store_true", help="Skip inserting the demo users and products")
    init_db.set_defaults(func=_init_db)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

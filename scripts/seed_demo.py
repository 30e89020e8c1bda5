from __future__ import annotations

import argparse
import json

from mock_portal.config.settings import get_settings
from mock_portal.storage.postgres import PostgresPortalStorage

DEMO_ROUTES = [
    {"method": "GET", "path": "/users", "mock_response_json": [{"id": 1, "name": "Ada"}]},
    {"method": "GET", "path": "/users/{id}", "mock_response_json": {"id": 1, "name": "Ada"}},
    {"method": "POST", "path": "/users", "status_code": 201},
    {"method": "GET", "path": "/users/search", "status_code": 503},
    {"method": "DELETE", "path": "/users/{id}", "enabled": False},
]


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create the portal schema and insert a demo API with routes."
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="PostgreSQL URL. Defaults to MOCK_PORTAL_DATABASE_URL / DATABASE_URL.",
    )
    parser.add_argument("--name", default="Users Demo", help="Demo API name.")
    parser.add_argument("--version", default="1.0.0", help="Demo API version.")
    parser.add_argument(
        "--draft",
        action="store_true",
        help="Insert the API as draft so it stays hidden from the catalogue.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    settings = get_settings()
    database_url = args.database_url or settings.resolved_database_url()
    if not database_url:
        raise SystemExit("Missing database URL. Pass --database-url or set MOCK_PORTAL_DATABASE_URL.")

    storage = PostgresPortalStorage(database_url, timeout_s=settings.storage_timeout_s)
    storage.migrate()
    api = storage.insert_api(
        name=args.name,
        version=args.version,
        description="Seeded demo API for the mock portal.",
        status="draft" if args.draft else "published",
    )
    routes = [storage.insert_route(api_id=api.id, **fields) for fields in DEMO_ROUTES]

    print(
        json.dumps(
            {
                "api_id": api.id,
                "routes": [
                    {"id": route.id, "method": route.method, "path": route.path}
                    for route in routes
                ],
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    main()

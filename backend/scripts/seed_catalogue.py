#!/usr/bin/env python3
"""
Create the schema and seed the catalogue.

Inserts the default categories (and demo products unless --no-products) when
the tables are empty, then optionally loads extra products from a JSON file
of POST /api/products payloads.

Usage:
    python scripts/seed_catalogue.py
    python scripts/seed_catalogue.py --reset --file ./mock/products.json
"""
import argparse
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from catalogue.config import settings
from catalogue.db import Database
from catalogue.db.seed import seed_catalogue, seed_from_file
from catalogue.logging_setup import configure_logging


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--database-url", default=settings.DATABASE_URL, help="defaults to DATABASE_URL")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    parser.add_argument("--no-products", action="store_true", help="seed categories only")
    parser.add_argument("--file", "-f", help="JSON list of product payloads to load")
    args = parser.parse_args(argv)

    configure_logging(settings.LOG_LEVEL)

    if args.file and not os.path.exists(args.file):
        print("File not found:", args.file)
        return 1

    database = Database(args.database_url)
    database.init_db(reset=args.reset)
    db = database.session()
    try:
        seeded = seed_catalogue(db, with_products=not args.no_products)
        print(f"Seeded {seeded['categories']} categories, {seeded['products']} products")
        if args.file:
            loaded = seed_from_file(db, args.file)
            print(f"Loaded {loaded['created']} products from {args.file} ({loaded['skipped']} skipped)")
    finally:
        db.close()
        database.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())

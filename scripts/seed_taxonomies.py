#!/usr/bin/env python
"""Seed a local database with taxonomy trees.

This script:
1. Creates the taxonomy tables (optional)
2. Stores a nested tree of nodes through TaxonomyService, so closure
   paths, translations and slugs are written exactly as the API would

Usage:
    # Create tables and seed the demo product categories
    python scripts/seed_taxonomies.py --create-tables --type product_category

    # Seed a tree from a JSON file
    python scripts/seed_taxonomies.py --type blog_category --file ./blog.json

    # Show a type as it is listed by the API
    python scripts/seed_taxonomies.py --show product_category --locale fa

Tree files hold a list of nodes, each node a dict with ``name`` (or
``translation``), optional ``slug``, ``metadata`` and ``children``.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taxonomy.core.exceptions import TaxonomyError
from taxonomy.core.locale import set_locale
from taxonomy.core.type_registry import load_type_registry, set_type_registry
from taxonomy.infra.database import close_db_engine, create_tables, get_db_session
from taxonomy.infra.logging import get_logger, setup_logging
from taxonomy.services.taxonomy_service import TaxonomyService


setup_logging()
logger = get_logger(__name__)


DEMO_TREE: list[dict[str, Any]] = [
    {
        "translation": {"en": {"name": "Electronics"}, "fa": {"name": "الکترونیک"}},
        "slug": "electronics",
        "children": [
            {
                "translation": {"en": {"name": "Phones"}, "fa": {"name": "گوشی"}},
                "slug": "phones",
                "children": [
                    {
                        "translation": {"en": {"name": "Smartphones"}, "fa": {"name": "هوشمند"}},
                        "slug": "smartphones",
                    },
                ],
            },
            {"name": "Laptops", "slug": "laptops"},
        ],
    },
    {"name": "Books", "slug": "books", "children": [{"name": "Novels", "slug": "novels"}]},
]


def node_payload(type: str, node: dict[str, Any], parent_id: int | None, hierarchical: bool) -> dict:
    """Store payload of one tree node."""
    translation = node.get("translation") or {"en": {"name": node["name"]}}
    payload: dict[str, Any] = {"type": type, "translation": translation}
    if hierarchical:
        payload["parent_id"] = parent_id
    for key in ("slug", "ordering", "status", "metadata", "media"):
        if key in node:
            payload[key] = node[key]
    return payload


async def seed_tree(
    service: TaxonomyService,
    type: str,
    nodes: list[dict[str, Any]],
    parent_id: int | None = None,
) -> int:
    """Store ``nodes`` and their children depth first.

    Returns:
        Number of nodes stored
    """
    hierarchical = service.registry.type(type).hierarchical
    stored = 0
    for node in nodes:
        response = await service.store(node_payload(type, node, parent_id, hierarchical))
        if not response.ok:
            logger.error("Node rejected", type=type, errors=response.errors)
            continue
        stored += 1
        children = node.get("children") or []
        if children and hierarchical:
            stored += await seed_tree(service, type, children, response.data.id)
    return stored


async def show_type(service: TaxonomyService, type: str) -> None:
    """Print every node of ``type`` with its full name."""
    views = await service.all(type)
    print(f"\n{type}: {len(views)} nodes")
    print("-" * 60)
    for view in views:
        name = view.name_multiple if view.hierarchical else view.name
        print(f"  [{view.id:>4}] {name or '(untranslated)'}")


def load_tree(path: str) -> list[dict[str, Any]]:
    """Read a tree file."""
    with open(path, encoding="utf-8") as f:
        tree = json.load(f)
    if not isinstance(tree, list):
        raise ValueError("tree file must hold a list of nodes")
    return tree


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Seed taxonomy trees into a local database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--type",
        type=str,
        help="Taxonomy type to seed",
    )
    parser.add_argument(
        "--file",
        type=str,
        help="JSON tree file (default: built-in demo tree)",
    )
    parser.add_argument(
        "--types-file",
        type=str,
        help="Taxonomy types YAML (default: TAXONOMY_TYPES_FILE)",
    )
    parser.add_argument(
        "--tenant",
        type=str,
        help="Tenant ID for the RLS context",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables first",
    )
    parser.add_argument(
        "--show",
        type=str,
        metavar="TYPE",
        help="List the nodes of a taxonomy type",
    )
    parser.add_argument(
        "--locale",
        type=str,
        default="en",
        help="Locale used for --show (default: en)",
    )

    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    registry = load_type_registry(args.types_file)
    set_type_registry(registry)

    if args.create_tables:
        await create_tables()

    if args.show:
        set_locale(args.locale)
        async with get_db_session(tenant_id=args.tenant) as session:
            await show_type(TaxonomyService(session, registry=registry), args.show)
        return 0

    if not args.type:
        print("Error: --type is required (or use --show)")
        print(f"Registered types: {', '.join(registry.get_available())}")
        return 1

    try:
        tree = load_tree(args.file) if args.file else DEMO_TREE
    except (OSError, ValueError) as e:
        print(f"Error: Invalid tree file: {e}")
        return 1

    async with get_db_session(tenant_id=args.tenant) as session:
        service = TaxonomyService(session, registry=registry)
        stored = await seed_tree(service, args.type, tree)
        await show_type(service, args.type)

    print(f"\nStored {stored} nodes")
    return 0


async def main() -> int:
    """Main entry point."""
    args = parse_args()
    try:
        return await run(args)
    except TaxonomyError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        await close_db_engine()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

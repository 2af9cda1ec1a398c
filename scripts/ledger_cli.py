#!/usr/bin/env python3
"""
Operator command line for the inventory ledger.

Usage:
    python3 scripts/ledger_cli.py init
    python3 scripts/ledger_cli.py create --sku SKU-1 --name Widget \\
        --quantity 10 --location Warehouse --price 2.50
    python3 scripts/ledger_cli.py move --sku SKU-1 --quantity 4 \\
        --from Warehouse --to Retailer
    python3 scripts/ledger_cli.py inventory --search widget
    python3 scripts/ledger_cli.py verify

The chain is stored in the configured database (``--config`` YAML file or
the bundled defaults); ``--database-url`` overrides the configured URL.

Exit codes: 0 on success, 1 on a rejected proposal, a broken chain or an
operational error, 2 on bad arguments.
"""

import argparse
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from inventory_config import LedgerConfig, get_active_config  # noqa: E402
from inventory_config.bridges import (  # noqa: E402
    build_chain_store,
    build_inventory_selector,
    logging_level,
)
from inventory_kernel.db.engine import (  # noqa: E402
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.domain.clock import SystemClock  # noqa: E402
from inventory_kernel.domain.transactions import (  # noqa: E402
    Actor,
    CreateItem,
    Move,
    StockIn,
    StockOut,
)
from inventory_kernel.exceptions import InventoryKernelError  # noqa: E402
from inventory_kernel.logging_config import configure_logging  # noqa: E402
from inventory_kernel.services.ledger_service import LedgerService  # noqa: E402

W = 72


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal amount: {value!r}") from None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Hash-chained inventory ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Ledger YAML configuration file")
    parser.add_argument("--database-url", help="Override the configured database URL")
    parser.add_argument("--user-id", default="cli", help="Actor user id")
    parser.add_argument("--actor-name", default="Operator", help="Actor display name")
    parser.add_argument("--employee-id", default=None, help="Actor employee id")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Load the chain, creating genesis if needed")
    sub.add_parser("verify", help="Validate every block hash and link")
    inventory = sub.add_parser("inventory", help="Show reconstructed inventory")
    inventory.add_argument(
        "--search", default=None, help="Only products whose name or SKU contains TERM"
    )

    history = sub.add_parser("history", help="Show the ledger entries for one SKU")
    history.add_argument("sku")

    ledger = sub.add_parser("ledger", help="Show ledger entries, newest first")
    ledger.add_argument("--limit", type=int, default=None)

    create = sub.add_parser("create", help="Create a product with opening stock")
    create.add_argument("--sku", required=True)
    create.add_argument("--name", required=True)
    create.add_argument("--quantity", type=int, required=True)
    create.add_argument("--location", required=True)
    create.add_argument("--price", type=_decimal, required=True)
    create.add_argument("--category", default=None)

    for name, help_text in (
        ("stock-in", "Receive stock at a location"),
        ("stock-out", "Issue stock from a location"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--sku", required=True)
        cmd.add_argument("--quantity", type=int, required=True)
        cmd.add_argument("--location", required=True)

    move = sub.add_parser("move", help="Move stock between locations")
    move.add_argument("--sku", required=True)
    move.add_argument("--quantity", type=int, required=True)
    move.add_argument("--from", dest="from_location", required=True)
    move.add_argument("--to", dest="to_location", required=True)

    reset = sub.add_parser("reset", help="Discard the chain and start from genesis")
    reset.add_argument("--yes", action="store_true", help="Confirm the reset")

    return parser


def _load_config(args: argparse.Namespace) -> LedgerConfig:
    config = get_active_config(args.config)
    if args.database_url:
        config = config.with_database_url(args.database_url)
    return config


def _draft(args: argparse.Namespace, config: LedgerConfig, clock: SystemClock):
    actor = Actor(user_id=args.user_id, name=args.actor_name, employee_id=args.employee_id)
    at = clock.now()
    if args.command == "create":
        return CreateItem(
            sku=args.sku,
            name=args.name,
            quantity=args.quantity,
            to_location=args.location,
            price=args.price,
            category=args.category or config.default_category,
            actor=actor,
            at=at,
        )
    if args.command == "stock-in":
        return StockIn(sku=args.sku, quantity=args.quantity, location=args.location, actor=actor, at=at)
    if args.command == "stock-out":
        return StockOut(sku=args.sku, quantity=args.quantity, location=args.location, actor=actor, at=at)
    return Move(
        sku=args.sku,
        quantity=args.quantity,
        from_location=args.from_location,
        to_location=args.to_location,
        actor=actor,
        at=at,
    )


def _print_entries(entries) -> None:
    if not entries:
        print("  No ledger entries.")
        return
    for entry in entries:
        print(f"  Block #{entry.index}  |  {entry.timestamp.isoformat()}  |  {entry.actor_name}")
        print(f"    {entry.description}")
        print(f"    hash {entry.hash}")
        print(f"    prev {entry.previous_hash}")


def _print_inventory(selector, search: str | None = None) -> None:
    summary = selector.summary()
    print()
    print("=" * W)
    print("INVENTORY".center(W))
    print("=" * W)
    print(f"  Products: {summary.sku_count}   Units: {summary.total_units}   "
          f"Value: {summary.total_value:,.2f}   Blocks: {summary.block_count}")
    print()
    if search is None:
        details = [selector.product_detail(sku) for sku in sorted(selector.state)]
    else:
        details = selector.search(search)
        print(f"  Search '{search}': {len(details)} match(es)")
    for detail in details:
        print(f"  {detail.sku:<12} {detail.product_name:<24} {detail.category:<16} "
              f"{detail.total_units:>6} units")
        for location, quantity in detail.locations:
            print(f"      {location:<20} {quantity:>6}")
    low = selector.low_stock()
    if low:
        print()
        print(f"  Low stock (threshold {selector.low_stock_threshold}):")
        for item in low:
            print(f"      {item.sku:<12} {item.product_name:<24} {item.total_units:>6}")
    print()


def _run(args: argparse.Namespace, config: LedgerConfig) -> int:
    init_engine_from_url(config.database_url)
    create_tables()

    clock = SystemClock()
    ledger = LedgerService(build_chain_store(config, get_session_factory()), clock=clock)
    ledger.load()

    if args.command == "init":
        print(f"  Chain '{config.chain_key}': {ledger.height} block(s), tip {ledger.tip_hash}")
        return 0

    if args.command == "verify":
        result = ledger.verify()
        print(f"  {result.message}")
        return 0 if result.is_valid else 1

    if args.command == "reset":
        if not args.yes:
            print("  Refusing to reset without --yes.", file=sys.stderr)
            return 1
        genesis = ledger.reset()
        print(f"  Chain reset. Genesis {genesis.hash}")
        return 0

    selector = build_inventory_selector(config, ledger.chain, ledger.inventory)

    if args.command == "inventory":
        _print_inventory(selector, args.search)
        return 0
    if args.command == "history":
        _print_entries(selector.item_history(args.sku))
        return 0
    if args.command == "ledger":
        entries = selector.ledger_entries()
        if args.limit is not None:
            entries = entries[: args.limit]
        _print_entries(entries)
        return 0

    result = ledger.propose(_draft(args, config, clock))
    if not result.is_success:
        print(f"  REJECTED ({result.rejection.code}): {result.rejection.message}", file=sys.stderr)
        return 1
    print(f"  Appended block #{result.block.index} {result.block.hash}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = _load_config(args)
    except (OSError, KeyError, ValueError, yaml.YAMLError) as exc:
        print(f"  ERROR: invalid configuration: {exc}", file=sys.stderr)
        return 1

    configure_logging(level=logging_level(config))

    try:
        return _run(args, config)
    except InventoryKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        reset_engine()


if __name__ == "__main__":
    sys.exit(main())

# ruff: noqa: T201

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from relstage.adapters.sqlalchemy import SqlAlchemyRelationResolver
from relstage.config import configure_logging
from relstage.domain.builder import registry_for

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from relstage.domain.builder import RelationRegistry

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect staged relation declarations")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    keys = subparsers.add_parser("keys", help="List the form keys a parent type accepts")
    keys.add_argument("target", help="Parent type as module:ClassName")

    relations = subparsers.add_parser(
        "relations", help="Resolve declared relations against SQLAlchemy mappers"
    )
    relations.add_argument("target", help="Parent type as module:ClassName")
    return parser.parse_args(list(argv))


def _load_type(target: str) -> type[Any]:
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected module:ClassName, got {target!r}")
    module = importlib.import_module(module_name)
    try:
        loaded = getattr(module, attribute)
    except AttributeError as exc:
        raise ValueError(f"{module_name} has no attribute {attribute!r}") from exc
    if not isinstance(loaded, type):
        raise ValueError(f"{target} is not a class")
    return loaded


def _print_keys(registry: RelationRegistry) -> None:
    for key, route in sorted(registry.routes.items()):
        mode = registry.config(route.relation).mode
        print(f"{key}\t{route.relation}\t{route.kind}\t{mode}")


def _print_relations(registry: RelationRegistry) -> None:
    resolver = SqlAlchemyRelationResolver()
    for config in registry:
        descriptor = resolver.resolve(registry.parent_type, config.name)
        link = descriptor.link_key or "-"
        print(
            f"{config.name}\t{descriptor.target.__name__}\t{descriptor.cardinality}\t{link}"
            f"\t{config.mode}"
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Command line entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        parent_type = _load_type(parsed_args.target)
    except (ValueError, ImportError):
        log.exception("Cannot load %s", parsed_args.target)
        sys.exit(2)

    try:
        registry = registry_for(parent_type)
        if parsed_args.command == "keys":
            _print_keys(registry)
        elif parsed_args.command == "relations":
            _print_relations(registry)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()

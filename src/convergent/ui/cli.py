# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from convergent.app import (
    clear_company_confirmation,
    company_readiness,
    confirm_company_field,
    import_company_domain,
)
from convergent.common.logging import configure_logging
from convergent.config import get_import_config
from convergent.domain.errors import ConflictError
from convergent.domain.model import split_path

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Converge diagnostic lab findings")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    importer = subparsers.add_parser("import", help="Import one domain for one company")
    importer.add_argument("company_id", help="Company identifier")
    importer.add_argument("domain", help="Domain to import, e.g. brand or competition")
    importer.add_argument(
        "--company-name",
        type=str,
        help="Company name, used to reject self-referencing competitors",
    )
    importer.add_argument(
        "--company-domain",
        type=str,
        help="Company web domain, used to reject self-referencing competitors",
    )
    importer.add_argument(
        "--trace",
        action=argparse.BooleanOptionalAction,
        default=get_import_config().trace,
        help="Attach the proof record to the output (default from CONVERGENT_TRACE)",
    )

    readiness = subparsers.add_parser("readiness", help="Show strategy readiness")
    readiness.add_argument("company_id", help="Company identifier")

    confirm = subparsers.add_parser("confirm", help="Confirm a field value as a human")
    confirm.add_argument("company_id", help="Company identifier")
    confirm.add_argument("path", help="Field path, e.g. brand.positioning")
    confirm.add_argument(
        "value",
        nargs="?",
        help="Value to confirm; parsed as JSON when possible, else taken verbatim",
    )
    confirm.add_argument(
        "--source",
        type=str,
        default="user",
        help="Human source recorded in provenance (default: %(default)s)",
    )
    confirm.add_argument(
        "--clear",
        action="store_true",
        help="Remove an existing confirmation instead of setting one",
    )

    return parser.parse_args(list(argv))


def _parse_value(raw: str) -> object:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _validate(args: argparse.Namespace) -> None:
    if args.command == "confirm":
        split_path(args.path)
        if not args.clear and args.value is None:
            raise ValueError("Missing value to confirm (or pass --clear)")


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    if parsed_args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if parsed_args.command == "import":
            result = import_company_domain(
                parsed_args.company_id,
                parsed_args.domain,
                company_name=parsed_args.company_name,
                company_domain=parsed_args.company_domain,
                trace=parsed_args.trace,
            )
            payload = result.to_dict()
            if result.readiness is not None:
                payload["readiness"] = result.readiness.to_dict()
            _emit(payload)
            if not result.success:
                sys.exit(1)
        elif parsed_args.command == "readiness":
            _emit(company_readiness(parsed_args.company_id).to_dict())
        elif parsed_args.command == "confirm":
            if parsed_args.clear:
                saved = clear_company_confirmation(parsed_args.company_id, parsed_args.path)
            else:
                saved = confirm_company_field(
                    parsed_args.company_id,
                    parsed_args.path,
                    _parse_value(parsed_args.value),
                    source=parsed_args.source,
                )
            _emit({"path": parsed_args.path, "revisionId": saved.revision_id})
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ConflictError as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

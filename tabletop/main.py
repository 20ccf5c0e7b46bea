"""
Command-line entry point for the dice engine.

Usage:
    python -m tabletop.main 1d20+5
    python -m tabletop.main 1d20+3 --advantage --reason "Stealth"
    python -m tabletop.main 3d6 4d6 --seed 42 --json
"""

import argparse
import logging
import sys

from shared.constants import FORMAT_ERROR_CODE, RANGE_ERROR_CODE, POLICY_ERROR_CODE
from shared.enums import RollMode
from shared.protocol import DiceRolledMessage, ErrorMessage
from tabletop.config import settings
from tabletop.dice import (
    Dice, DiceError, DiceSession, FormatError, LockedRandomSource, PolicyError,
    RangeError, RollHistory, RollRecord, RollRequest
)


def setup_logging() -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabletop-dice",
        description="Roll dice formulas such as 1d20+5 or 3d6-2."
    )
    parser.add_argument("formulas", nargs="+", metavar="FORMULA")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--advantage", action="store_const", dest="mode",
        const=RollMode.ADVANTAGE, help="roll 2d20 and keep the higher"
    )
    mode.add_argument(
        "--disadvantage", action="store_const", dest="mode",
        const=RollMode.DISADVANTAGE, help="roll 2d20 and keep the lower"
    )
    parser.set_defaults(mode=RollMode.NORMAL)
    parser.add_argument("--reason", help="why the roll is made")
    parser.add_argument("--seed", type=int, help="seed for reproducible rolls")
    parser.add_argument("--game", default="local", help="game session id")
    parser.add_argument("--user", default="player", help="name to roll as")
    parser.add_argument("--role", help="table role shown with the roll, e.g. dm")
    parser.add_argument("--json", action="store_true", help="print DICE_ROLLED payloads")
    return parser


def error_code(error: DiceError) -> str:
    """Payload error code for a user-correctable dice error."""
    if isinstance(error, FormatError):
        return FORMAT_ERROR_CODE
    if isinstance(error, RangeError):
        return RANGE_ERROR_CODE
    if isinstance(error, PolicyError):
        return POLICY_ERROR_CODE
    return "ERROR"


def describe(record: RollRecord) -> str:
    """One human-readable line for a roll."""
    if record.kept is not None:
        line = (
            f"{record.formula} ({record.mode.value.lower()}) "
            f"{list(record.results)} keep {record.kept} = {record.total}"
        )
    else:
        line = f"{record.formula} {list(record.results)} = {record.total}"

    if record.is_critical_success:
        line += " CRITICAL!"
    elif record.is_critical_failure:
        line += " CRITICAL FAILURE!"
    if record.reason:
        line += f"  ({record.reason})"
    return line


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    setup_logging()
    args = build_parser().parse_args(argv)

    dice = Dice(LockedRandomSource(args.seed)) if args.seed is not None else Dice()
    session = DiceSession(args.game, dice=dice, history=RollHistory())
    username = args.user

    for formula_text in args.formulas:
        request = RollRequest(formula_text=formula_text, mode=args.mode, reason=args.reason)
        try:
            record = session.roll(username, username, request, role=args.role)
        except DiceError as e:
            if args.json:
                print(ErrorMessage.create(str(e), error_code(e)).to_json())
            else:
                print(f"Error: {e}", file=sys.stderr)
            return 2

        if args.json:
            print(DiceRolledMessage.create(args.game, record).to_json())
        else:
            print(describe(record))

    return 0


if __name__ == "__main__":
    sys.exit(main())

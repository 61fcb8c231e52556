#!/usr/bin/env python3
"""
bondchain Management CLI

Commands for inspecting and settling oracle questions:
- question: Show the current state of a question
- bonds: Bond totals per answer for a question
- my-bonds: Every bond an account has posted, per question
- claim-chain: The arguments a claim would submit right now
- verify-claim: Replay the claim chain against the current history hash
- claim: Claim winnings for a finalized question
- health-check: Check the ledger connection and configuration

Configuration comes from BONDCHAIN_* environment variables.

Usage:
    python -m tools.manage <command> [options]

Examples:
    python -m tools.manage question 0x5a1d...
    python -m tools.manage bonds 0x5a1d... --user 0x90F8bf6A...
    python -m tools.manage claim 0x5a1d... --confirmations 3
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


def _service():
    from bondchain.core import create_service
    from bondchain.observability import setup_logging

    setup_logging()
    return create_service()


def cmd_question(args):
    """Show the current state of a question."""
    from bondchain.gateway import SourceUnavailable

    service = _service()
    try:
        question = service.get_question(args.question_id)
    except SourceUnavailable as e:
        print(f"[FAIL] Ledger unavailable: {e}")
        return 1

    if not question.exists:
        print(f"Question {question.entity_id} does not exist")
        return 1

    print(f"Question: {question.entity_id}")
    print(f"  Status: {question.status}")
    print(f"  Best answer: {question.best_answer}")
    print(f"  Bond: {question.bond}")
    print(f"  Bounty: {question.bounty}")
    print(f"  Finalize ts: {question.finalize_ts}")
    print(f"  History hash: {question.history_hash}")
    if question.is_pending_arbitration:
        print("  [WARN] Pending arbitration")
    return 0


def cmd_bonds(args):
    """Bond totals per answer."""
    from bondchain.gateway import SourceUnavailable

    service = _service()
    try:
        ledger = service.get_bonds_by_answer(args.question_id, user=args.user)
    except SourceUnavailable as e:
        print(f"[FAIL] Ledger unavailable: {e}")
        return 1

    if not ledger.answers:
        print("No answers posted")
        return 0

    for answer, total in sorted(ledger.answers.items()):
        print(f"  {answer}: {total}")
    print(f"  Total: {ledger.grand_total}")
    return 0


def cmd_my_bonds(args):
    """Every bond an account has posted."""
    from bondchain.gateway import SourceUnavailable

    service = _service()
    try:
        questions = service.get_my_bonds(args.user)
    except SourceUnavailable as e:
        print(f"[FAIL] Ledger unavailable: {e}")
        return 1

    if not questions:
        print("No bonds found (set --user or BONDCHAIN_PRIVATE_KEY)")
        return 0

    for question_id, bonds in questions.items():
        print(f"{question_id}: {bonds.total}")
        for answer, total in bonds.answers.items():
            print(f"    {answer}: {total}")
    return 0


def cmd_claim_chain(args):
    """Print the claim arguments as JSON."""
    from bondchain.gateway import SourceUnavailable

    service = _service()
    try:
        chain = service.preview_claim(args.question_id)
    except SourceUnavailable as e:
        print(f"[FAIL] Ledger unavailable: {e}")
        return 1

    history_hashes, addresses, bonds, answers = chain.as_args()
    print(json.dumps({
        "history_hashes": history_hashes,
        "addresses": addresses,
        "bonds": [str(b) for b in bonds],
        "answers": answers,
    }, indent=2))
    return 0


def cmd_verify_claim(args):
    """Replay the claim chain against the current history hash."""
    from bondchain.core import ChainError
    from bondchain.gateway import SourceUnavailable

    service = _service()
    try:
        valid = service.verify_claim(args.question_id)
    except (SourceUnavailable, ChainError) as e:
        print(f"[FAIL] {e}")
        return 1

    if valid:
        print("[OK] Claim chain matches the current history hash")
        return 0
    print("[FAIL] Claim chain does NOT match (already claimed, or the log is incomplete)")
    return 1


def cmd_claim(args):
    """Claim winnings for a finalized question."""
    from bondchain.gateway import GatewayError, SubmissionRejected

    service = _service()
    try:
        handle = service.claim_winnings(args.question_id)
    except SubmissionRejected as e:
        print(f"[FAIL] Claim rejected: {e.reason}")
        return 1
    except GatewayError as e:
        print(f"[FAIL] {e}")
        return 1

    if handle is False:
        print("Nothing to claim (not finalized, already claimed, or no answers)")
        return 0

    print(f"Claim submitted: {handle.tx_hash}")
    if args.confirmations:
        try:
            receipt = handle.wait(confirmations=args.confirmations, timeout=args.timeout)
        except GatewayError as e:
            print(f"[FAIL] {e}")
            return 1
        print(f"[OK] Confirmed in block {receipt.get('blockNumber')}")
    return 0


def cmd_health_check(args):
    """Check the ledger connection."""
    from bondchain.gateway import GatewayConfig, get_gateway_driver
    from bondchain.observability import check_health

    config = GatewayConfig.from_env()
    service = _service()

    print("=== bondchain Health Check ===\n")
    print(f"Gateway: {get_gateway_driver(config).value}")
    for key, value in config.redacted().items():
        print(f"  {key}: {value}")

    health = check_health(gateway=service.gateway)
    print("\nChecks:")
    for name, result in health.checks.items():
        print(f"  {name}: {result}")

    if not health.healthy:
        print("\n[FAIL] Unhealthy")
        return 1
    print("\n=== Health Check Complete ===")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="bondchain Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    p_question = subparsers.add_parser("question", help="Show question state")
    p_question.add_argument("question_id")

    p_bonds = subparsers.add_parser("bonds", help="Bond totals per answer")
    p_bonds.add_argument("question_id")
    p_bonds.add_argument("--user", help="Only this account's bonds")

    p_my = subparsers.add_parser("my-bonds", help="Every bond an account has posted")
    p_my.add_argument("--user", help="Account (default: the signing account)")

    p_chain = subparsers.add_parser("claim-chain", help="Print the claim arguments")
    p_chain.add_argument("question_id")

    p_verify = subparsers.add_parser("verify-claim", help="Replay the claim chain offline")
    p_verify.add_argument("question_id")

    p_claim = subparsers.add_parser("claim", help="Claim winnings")
    p_claim.add_argument("question_id")
    p_claim.add_argument(
        "--confirmations", type=int, default=0,
        help="Wait for this many confirmations (default: don't wait)"
    )
    p_claim.add_argument("--timeout", type=float, default=None, help="Wait timeout in seconds")

    subparsers.add_parser("health-check", help="Check the ledger connection")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "question": cmd_question,
        "bonds": cmd_bonds,
        "my-bonds": cmd_my_bonds,
        "claim-chain": cmd_claim_chain,
        "verify-claim": cmd_verify_claim,
        "claim": cmd_claim,
        "health-check": cmd_health_check,
    }

    return commands[args.command](args) or 0


if __name__ == "__main__":
    sys.exit(main())

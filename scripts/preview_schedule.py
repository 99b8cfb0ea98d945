#!/usr/bin/env python3
"""
Preview a rental payment schedule without a database.

Generates the schedule for an agreement given on the command line,
optionally applies one payment and the late-fee policy, and prints the
result as JSON.

Usage:
    python3 scripts/preview_schedule.py --start 2024-01-01 --end 2024-06-30 \\
        --amount 300 --period month
    python3 scripts/preview_schedule.py --start 2024-01-01 --duration 6 \\
        --unit months --amount 300 --pay 450 --pay-date 2024-01-15 \\
        --as-of 2024-03-10
    python3 scripts/preview_schedule.py ... --config rental.yaml --verbose
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from rental_config import get_active_config  # noqa: E402
from rental_engines import (  # noqa: E402
    LateFeePolicy,
    RentalAgreement,
    apply_payment,
    calculate_late_fee,
    generate_schedule,
    project_status,
    settle_schedules,
    summarize,
    with_resolved_end_date,
)
from rental_kernel.domain.clock import SystemClock  # noqa: E402
from rental_kernel.domain.values import to_date  # noqa: E402
from rental_kernel.exceptions import RentalKernelError  # noqa: E402
from rental_kernel.logging_config import configure_logging  # noqa: E402


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Preview a rental payment schedule")
    parser.add_argument("--contract", default="PREVIEW", help="Contract number")
    parser.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", help="Inclusive end date (YYYY-MM-DD)")
    parser.add_argument("--duration", type=int, help="Duration, used when --end is omitted")
    parser.add_argument("--unit", choices=("days", "months"), default="months",
                        help="Duration unit")
    parser.add_argument("--amount", required=True, help="Rent per period")
    parser.add_argument("--period", choices=("day", "month"), default="month",
                        help="Billing granularity")
    parser.add_argument("--pay", help="Apply one payment of this amount")
    parser.add_argument("--pay-date", help="Payment date (defaults to --as-of)")
    parser.add_argument("--as-of", help="Status date (defaults to today)")

    fees = parser.add_argument_group("late fees (override the configured policy)")
    fees.add_argument("--fee-type", choices=("percentage", "fixed"))
    fees.add_argument("--fee-value")
    fees.add_argument("--grace-days", type=int)
    fees.add_argument("--max-fee")

    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--verbose", action="store_true",
                        help="Write structured logs to stderr")
    return parser


def _late_fee_policy(args: argparse.Namespace, configured: LateFeePolicy) -> LateFeePolicy:
    overrides = {
        "late_fee_type": args.fee_type,
        "late_fee_value": args.fee_value,
        "grace_period_days": args.grace_days,
        "max_amount": args.max_fee,
    }
    changes = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(configured, **changes) if changes else configured


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.verbose:
        configure_logging(level=logging.DEBUG)
    else:
        logging.disable(logging.CRITICAL)

    try:
        config = get_active_config(args.config)
        policy = _late_fee_policy(args, config.late_fee)
        as_of = to_date(args.as_of) if args.as_of else SystemClock().today()

        agreement = with_resolved_end_date(
            RentalAgreement(
                id=None,
                contract_number=args.contract,
                start_date=args.start,
                end_date=args.end,
                duration_value=args.duration,
                duration_unit=args.unit if args.duration is not None else None,
                rental_amount=args.amount,
                rental_period=args.period,
            )
        )
        rows = generate_schedule(agreement, max_periods=config.generation_limit)

        allocation = None
        if args.pay:
            allocation = apply_payment(rows, args.pay, args.pay_date or as_of)
            rows = settle_schedules(rows, allocation)

        rows = project_status(rows, as_of)
        rows = [
            dataclasses.replace(
                row,
                late_fee=calculate_late_fee(row.days_overdue, row.amount_due, policy),
            )
            if row.is_overdue
            else row
            for row in rows
        ]
    except RentalKernelError as e:
        print(f"error: {e.code}: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    output = {
        "agreement": {
            "contract_number": agreement.contract_number,
            "start_date": agreement.start_date.isoformat(),
            "end_date": agreement.end_date.isoformat(),
            "rental_amount": str(agreement.rental_amount),
            "rental_period": agreement.rental_period.value,
        },
        "as_of_date": as_of.isoformat(),
        "late_fee_policy": policy.to_dict(),
        "schedules": [row.to_dict() for row in rows],
        "payment": allocation.to_dict() if allocation else None,
        "summary": summarize(rows).to_dict(),
    }
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

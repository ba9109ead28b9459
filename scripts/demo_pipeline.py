#!/usr/bin/env python3
"""
X-Ray - Demo Pipeline
Runs a small product-selection pipeline (search, filter, select) under the
trace recorder and submits the trace.

Usage:
    python scripts/demo_pipeline.py                  # POST to the configured endpoint
    python scripts/demo_pipeline.py --local          # append straight to the local trace log
    python scripts/demo_pipeline.py --max-price 40
"""

import sys
import time
import argparse
from pathlib import Path
from typing import Dict, List, Any

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from xray.config import get_config_manager
from xray.logging_utils import build_logger
from xray.recorder import Explanation, recording
from xray.transport import StoreTraceSubmitter


MOCK_PRODUCTS: List[Dict[str, Any]] = [
    {"id": "p1", "name": "HydroFlask 32oz", "price": 45, "rating": 4.5, "reviews": 9000},
    {"id": "p2", "name": "Cheap Bottle", "price": 8, "rating": 3.2, "reviews": 50},
    {"id": "p3", "name": "Yeti Rambler", "price": 35, "rating": 4.8, "reviews": 5000},
    {"id": "p4", "name": "Gold Plated Bottle", "price": 150, "rating": 5.0, "reviews": 2},
]

MIN_RATING = 4.0


def filter_report(products: List[Dict[str, Any]], max_price: float) -> List[Dict[str, Any]]:
    """Build the candidate report for the filter step."""
    report = []
    for p in products:
        price_ok = p["price"] <= max_price
        rating_ok = p["rating"] > MIN_RATING
        reason = None
        if not price_ok:
            reason = f"Price ${p['price']} > ${max_price}"
        elif not rating_ok:
            reason = f"Rating {p['rating']} is too low"

        report.append({
            "id": p["id"],
            "name": p["name"],
            "data": {"price": p["price"], "rating": p["rating"]},
            "status": "selected" if price_ok and rating_ok else "rejected",
            "reason": reason,
        })
    return report


def run_demo_pipeline(
    submitter=None,
    environment: str = "development",
    query: str = "Best water bottle",
    max_price: float = 50,
    search_delay: float = 0.0
):
    """
    Run the demo pipeline and return (finalized recorder, chosen product).

    The trace is finalized as "failure" and the error re-raised if any
    step fails.
    """
    user_request = {"query": query, "maxPrice": max_price}

    with recording(submitter=submitter, environment=environment) as xray:

        def search():
            if search_delay:
                time.sleep(search_delay)
            return list(MOCK_PRODUCTS)

        candidates = xray.capture_step(
            "1. Candidate Search",
            user_request,
            search,
            lambda res: Explanation(
                reasoning=f"Found {len(res)} items matching keywords.",
                output={"count": len(res)},
            ),
        )

        filtered = xray.capture_step(
            "2. Apply Filters",
            {"filters": [f"price <= {max_price}", f"rating > {MIN_RATING}"]},
            lambda: [p for p in candidates if p["price"] <= max_price and p["rating"] > MIN_RATING],
            lambda res: Explanation(
                reasoning=f"Filtered down to {len(res)} items based on business rules.",
                candidates=filter_report(candidates, max_price),
                output={"survivors": [p["name"] for p in res]},
            ),
        )

        if not filtered:
            raise LookupError(f"No product matched {user_request}")

        chosen = xray.capture_step(
            "3. Final Selection",
            {"candidates": [p["name"] for p in filtered]},
            lambda: max(filtered, key=lambda p: p["reviews"]),
            lambda res: Explanation(
                reasoning=f"Selected {res['name']} because it had the highest review count.",
            ),
        )

    return xray, chosen


def main():
    parser = argparse.ArgumentParser(description="Run the X-Ray demo pipeline")
    parser.add_argument(
        '--local',
        action='store_true',
        help='Append the trace to the local trace log instead of POSTing it'
    )
    parser.add_argument(
        '--query',
        default="Best water bottle",
        help='Search query recorded as the pipeline input'
    )
    parser.add_argument(
        '--max-price',
        type=float,
        default=50,
        help='Maximum price filter (default: 50)'
    )
    args = parser.parse_args()

    config = get_config_manager(Path(__file__).parent.parent).config
    build_logger(config.log_dir)

    if args.local:
        submitter = StoreTraceSubmitter(config.build_store())
    else:
        submitter = config.build_submitter()

    try:
        xray, chosen = run_demo_pipeline(
            submitter=submitter,
            environment=config.environment,
            query=args.query,
            max_price=args.max_price,
            search_delay=0.5
        )
    except LookupError as e:
        print(f"Pipeline failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Selected: {chosen['name']}")
    print(f"Trace: {xray.trace_id} ({xray.step_count} steps)")


if __name__ == '__main__':
    main()

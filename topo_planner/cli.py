from __future__ import annotations
import argparse
import logging
import os
from typing import List, Optional

from .constants import DEFAULT_PLAN_OUTPUT, PLAN_OUTPUT_ENV
from .errors import TopoPlannerError
from .parsers.scenario import load_scenario_files
from .planning.orchestrator import compute_full_plan
from .planning.plan_emitter import emit_plan, write_plan_json
from .utils.report import write_report

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFLICTS = 2


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="topo-planner",
        description="Plan subnets, access rules and routes from declarative service/network layers",
    )
    ap.add_argument(
        "--input",
        action="append",
        required=True,
        help="Scenario layer (YAML or JSON); repeat to stack layers in order",
    )
    ap.add_argument(
        "--output",
        default=None,
        help=f"Path to write the serialized plan JSON (default: ${PLAN_OUTPUT_ENV} or {DEFAULT_PLAN_OUTPUT})",
    )
    ap.add_argument("--report", default=None, help="Optional path to write a Markdown plan report")
    ap.add_argument("--scenario", default=None, help="Scenario name shown in the report")
    ap.add_argument(
        "--allow-conflicts",
        action="store_true",
        help="Write the plan even when conflicts were found (conflicts are listed in warnings)",
    )
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    log = logging.getLogger(__name__)

    output = args.output or os.environ.get(PLAN_OUTPUT_ENV) or DEFAULT_PLAN_OUTPUT

    try:
        model = load_scenario_files(args.input)
        plan, conflicts = compute_full_plan(model)
    except OSError as e:
        log.error("Cannot read scenario input: %s", e)
        return EXIT_ERROR
    except TopoPlannerError as e:
        log.error("%s: %s", type(e).__name__, e)
        return EXIT_ERROR

    if conflicts:
        log.warning("%d conflict(s) found", len(conflicts))

    try:
        if args.report:
            write_report(
                args.report,
                plan,
                conflicts,
                scenario_name=args.scenario,
                metadata={"inputs": list(args.input)},
            )
            log.info("Plan report written to %s", args.report)

        if conflicts and not args.allow_conflicts:
            log.error("Plan not written; fix the conflicts above or pass --allow-conflicts")
            return EXIT_CONFLICTS

        write_plan_json(output, emit_plan(plan, conflicts))
    except OSError as e:
        log.error("Cannot write output: %s", e)
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

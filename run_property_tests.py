"""
Test runner for the Visual Analytics properties
"""
import argparse
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import configure_logging
from modules.properties import PROPERTY_CHECKS, VisualAnalyticsProperties

logger = logging.getLogger(__name__)

DEFAULT_PROPERTY = 'data_consistency'


class Outcome(Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class PropertyResult:
    name: str
    outcome: Outcome
    message: Optional[str] = None


def run_property(name, suite_factory, check):
    """Build the suite and run one check on it, turning whatever happens into a result"""
    try:
        suite = suite_factory()
        passed = check(suite)
    except Exception as e:
        logger.debug("Property %s raised", name, exc_info=True)
        return PropertyResult(name, Outcome.ERROR, str(e))
    return PropertyResult(name, Outcome.PASSED if passed else Outcome.FAILED)


def format_result(result):
    if result.outcome is Outcome.PASSED:
        return "✅ PASSED"
    if result.outcome is Outcome.FAILED:
        return "❌ FAILED"
    return f"💥 Test Exception: {result.message}"


def main(argv=None, suite_factory=VisualAnalyticsProperties):
    parser = argparse.ArgumentParser(description="Run the visual analytics property checks")
    parser.add_argument(
        "property",
        nargs="?",
        default=DEFAULT_PROPERTY,
        choices=list(PROPERTY_CHECKS) + ["all"],
        help="property to run (default: %(default)s)"
    )
    args = parser.parse_args(argv)
    configure_logging()

    selected = list(PROPERTY_CHECKS) if args.property == "all" else [args.property]

    print("Testing Visual Analytics Properties...")
    print("=====================================\n")

    results = []
    for name in selected:
        title, check = PROPERTY_CHECKS[name]
        print(f"Testing {title}...")
        result = run_property(name, suite_factory, check)
        print(format_result(result))
        results.append(result)

    summary = {outcome: sum(1 for r in results if r.outcome is outcome) for outcome in Outcome}
    print(f"\nAll Visual Analytics Property Tests Complete! "
          f"({summary[Outcome.PASSED]} passed, {summary[Outcome.FAILED]} failed, {summary[Outcome.ERROR]} errors)")
    # Pass, fail and error all end the run normally
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

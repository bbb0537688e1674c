"""
Rule level table
----------------
Turns axe-core's rule-descriptions.md into rule-wcag-levels.csv
(rule_id, conformity_level), for reading the detailed JSON reports by
WCAG level after the fact.
"""

import argparse
import csv
import logging
import sys
from collections import Counter
from pathlib import Path

from a11y_harness.infrastructure.tools.wcag_levels import parse_rule_descriptions

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
log = logging.getLogger(__name__)

DEFAULT_INPUT  = "rule-descriptions.md"
DEFAULT_OUTPUT = "rule-wcag-levels.csv"


def extract(input_path: str, output_path: str) -> int:
    path = Path(input_path)
    if not path.exists():
        log.error("Input file not found: %s", path)
        return 1

    rules = parse_rule_descriptions(path.read_text(encoding="utf-8"))

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["rule_id", "conformity_level"])
        writer.writerows(rules)

    log.info("Wrote %d rules to %s", len(rules), output_path)
    for level, count in sorted(Counter(level for _, level in rules).items()):
        log.info("   %-15s: %d", level, count)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Map axe-core rules to WCAG conformance levels")
    parser.add_argument("--input", default=DEFAULT_INPUT)
    parser.add_argument("--output", default=DEFAULT_OUTPUT)
    args = parser.parse_args()
    sys.exit(extract(args.input, args.output))

"""Run the Top 10 scrape job once from the command line.

Examples:
    python main.py
    python main.py --country "Hong Kong" --category shows_en
    python main.py --sample tests/fixtures/sample_top10.html
"""

import argparse
import json

from src.config import CATEGORIES
from src.handler import lambda_handler


def build_event(argv=None):
    parser = argparse.ArgumentParser(description="Scrape, enrich and store a Netflix Top 10 list")
    parser.add_argument("--country", default="Global")
    parser.add_argument("--category", default="movies_en", choices=CATEGORIES)
    parser.add_argument("--sample", metavar="PATH", help="render a saved Tudum page instead of the live site")
    parser.add_argument("--timeout-ms", type=int)
    args = parser.parse_args(argv)

    event = {"country": args.country, "category": args.category}
    if args.sample:
        event["use_sample"] = True
        event["sample_path"] = args.sample
    if args.timeout_ms is not None:
        event["timeout_ms"] = args.timeout_ms
    return event


if __name__ == '__main__':
    response = lambda_handler(build_event(), None)
    print(json.dumps(json.loads(response["body"]), indent=2))
    raise SystemExit(0 if response["statusCode"] == 200 else 1)

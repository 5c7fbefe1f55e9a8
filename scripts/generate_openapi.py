"""Write the bot's OpenAPI schema, or check a committed copy for drift.

The schema covers the webhook receiver, the health probe and, unless
``--no-stub`` is given, the stub analysis endpoint used for local development.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from app.main import create_app
from app.services.dispatcher import HANDLED_EVENTS


def build_schema(*, stub_analysis: bool) -> dict[str, Any]:
    schema = create_app(stub_analysis=stub_analysis).openapi()
    schema["info"]["x-github-events"] = list(HANDLED_EVENTS)
    return schema


def render(schema: dict[str, Any]) -> str:
    return json.dumps(schema, indent=2, sort_keys=True) + "\n"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate the PR analysis bot OpenAPI schema")
    parser.add_argument("--output", default="openapi.json", help="Schema path (default: openapi.json)")
    parser.add_argument(
        "--stub",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Include the stub POST /api/analyze-files endpoint (default: on)",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Exit non-zero if the schema at --output differs instead of rewriting it",
    )
    args = parser.parse_args(argv)

    output_path = Path(args.output)
    rendered = render(build_schema(stub_analysis=args.stub))
    if args.check:
        current = output_path.read_text(encoding="utf-8") if output_path.is_file() else ""
        if current != rendered:
            print(f"{output_path} is out of date; rerun without --check", file=sys.stderr)
            return 1
        return 0

    output_path.write_text(rendered, encoding="utf-8")
    print(f"OpenAPI schema written to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import List

from tagdist.runtime.io.wire import Window, parse_wire_timestamp
from tagdist.runtime.sdk.configuration import get_runtime_config
from tagdist.runtime.sdk.exceptions import TagDistError


def _parse_time(value: str) -> int:
    """Accept epoch milliseconds or an ISO-8601 timestamp."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return parse_wire_timestamp(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid time: {value!r}") from exc


def _confidence(value: str) -> float:
    try:
        confidence = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid confidence: {value!r}") from exc
    if not 0 < confidence < 100:
        raise argparse.ArgumentTypeError("confidence must lie strictly between 0 and 100")
    return confidence


def _progress(stage: str, current: int | None = None, total: int | None = None) -> None:
    if total:
        print(f"{stage} {current}/{total}", file=sys.stderr)
    else:
        print(stage, file=sys.stderr)


async def _summarize(args: argparse.Namespace) -> dict:
    from tagdist.runtime.service import TagDataService

    config = get_runtime_config(args.config)
    if args.strategy:
        config = replace(config, fetch=replace(config.fetch, strategy=args.strategy))
    service = TagDataService.from_config(args.agent_id, config)
    try:
        summary = await service.summarize(
            args.selector,
            Window(args.start, args.end),
            confidence=args.confidence,
            ignore_zero=args.ignore_zero or None,
            progress=None if args.quiet else _progress,
        )
    finally:
        await service.aclose()
    return summary.to_dict()


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="tagdist")
    sub = parser.add_subparsers(dest="cmd", required=True)
    p_sum = sub.add_parser(
        "summarize", help="Fetch a tag's raw data and print its distribution summary"
    )
    p_sum.add_argument("--selector", required=True, help="Agent#selected:<source>.tag.<tag>")
    p_sum.add_argument("--agent-id", required=True, help="Public id of the agent")
    p_sum.add_argument("--from", dest="start", type=_parse_time, required=True)
    p_sum.add_argument("--to", dest="end", type=_parse_time, required=True)
    p_sum.add_argument("--config", help="Path to tagdist.yml")
    p_sum.add_argument("--confidence", type=_confidence, default=None)
    p_sum.add_argument("--ignore-zero", action="store_true")
    p_sum.add_argument("--strategy", choices=["parallel", "sequential"])
    p_sum.add_argument("--quiet", action="store_true", help="Suppress progress output")
    p_sum.add_argument("--log-level", default="WARNING")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))

    if args.cmd == "summarize":
        try:
            result = asyncio.run(_summarize(args))
        except TagDistError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())

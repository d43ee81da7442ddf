"""CLI for running a DE x RASTREIO matching job from a JSON file."""

import argparse
import json
from pathlib import Path

from dexpara.application.dto.match_dto import MatchJobRequest
from dexpara.config.composition import build_container
from dexpara.config.logging_setup import configure_logging


def _parse_weights(raw: str) -> list[float]:
    try:
        return [float(p) for p in raw.split(",")]
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"invalid weights: {raw!r}") from err


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dexpara-match",
        description="Match DE URLs against RASTREIO URLs",
    )
    parser.add_argument(
        "--input",
        required=True,
        type=Path,
        help='JSON file: {"de": [...rows], "rastreio": [...rows]}',
    )
    parser.add_argument(
        "--weights", type=_parse_weights, default=None, help="slug,title,description,h1"
    )
    parser.add_argument("--min-score", type=float, default=None, help="Match threshold (0-1)")
    parser.add_argument("--no-ai", action="store_true", help="Skip AI refinement")
    parser.add_argument("--output", type=Path, default=None, help="Write best matches as JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    container = build_container()
    configure_logging(container.settings.log_level)

    payload = json.loads(args.input.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        print(f"\n[ERROR] invalid input: expected a JSON object, got {type(payload).__name__}")
        return 1

    req = MatchJobRequest(
        de_rows=payload.get("de", []),
        rast_rows=payload.get("rastreio", []),
        weights=args.weights or container.settings.default_weights,
        min_score=(
            container.settings.default_min_score if args.min_score is None else args.min_score
        ),
        use_ai=not args.no_ai,
    )
    uc = container.get_job_use_case()
    sid = uc.new_session_id()
    result = uc.execute(req, session_id=sid)
    # nobody polls progress from the CLI, so drop the terminal record
    container.progress.discard(sid)

    if not result.ok or result.value is None:
        err = result.error
        print(f"\n[ERROR] {type(err).__name__}: {err}")
        return 1

    report = result.value
    print("\n" + "=" * 80)
    print(f"MATCHES (min score {report.min_score:.2f}, AI refined: {report.ai_refined}):")
    print("=" * 80)
    for row in report.rows:
        if row.best is None:
            continue
        flag = "✓" if row.matched else "✗"
        print(f"{flag} {row.de_url} -> {row.best.url} (score={row.best.effective_score:.3f})")
    stats = report.stats
    print(
        f"\n{stats.total_comparisons} comparisons, avg={stats.average_score:.3f}, "
        f">=0.8: {stats.scores_above_80}, >=0.9: {stats.scores_above_90}"
    )

    if args.output is not None:
        best = [
            {
                "de_url": row.de_url,
                "match_url": row.best.url if row.matched and row.best else None,
                "score": row.best.effective_score if row.best else None,
            }
            for row in report.rows
        ]
        args.output.write_text(json.dumps(best, ensure_ascii=False, indent=2), encoding="utf-8")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

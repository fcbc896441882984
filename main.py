"""Hook Line Studio — Entry Point.

Usage:
    # Generate 10 hooks for a topic
    python main.py generate "7-day sugar-free experiment" --platform tiktok --objective watch_time

    # Same, with brand context, pinned jitter and a CSV export
    python main.py generate "how to fix your squat" -p instagram -o saves \\
        --company "Form Lab" --audience "new lifters" --seed 7 --csv outputs/hooks.csv

    # Full JSON result on stdout
    python main.py generate "my first marathon" -p youtube -o ctr --json

    # Print the hook taxonomy
    python main.py taxonomy
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

import config
from pipeline.hook_engine import HookSettings, InvalidHookRequest, generate_hooks
from pipeline.hook_export import write_hooks_csv
from pipeline.hook_scoring import ScoreJitter
from pipeline.hook_taxonomy import HOOK_TAXONOMY
from schemas.hooks import GenerationResult, Objective, Platform

console = Console()


def setup_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(message)s",
        # stderr so `generate --json` stays pipeable
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def build_request(args: argparse.Namespace) -> dict:
    """Build the request dict from CLI args (validated by the pipeline)."""
    brand = {
        key: value
        for key, value in {
            "company": args.company,
            "role": args.role,
            "industry": args.industry,
            "audience": args.audience,
            "voice": args.voice,
        }.items()
        if value
    }
    if args.banned:
        brand["banned_terms"] = [t.strip() for t in args.banned.split(",") if t.strip()]
    return {
        "topic": args.topic,
        "platform": args.platform,
        "objective": args.objective,
        "brand": brand,
        "model_type": args.model_type,
    }


def print_result(result: GenerationResult):
    table = Table(title=f"Hooks: {result.platform.value} / {result.objective.value}", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Score", justify="right", style="bold green")
    table.add_column("Hook")
    table.add_column("Overlay", style="cyan")
    table.add_column("Framework", style="magenta")
    table.add_column("Words", justify="right")
    table.add_column("Flags", style="yellow")

    for idx, hook in enumerate(result.hooks, start=1):
        flags = []
        if hook.repaired:
            flags.append("repaired")
        if hook.validation_issues:
            flags.append(f"{len(hook.validation_issues)} issue(s)")
        table.add_row(
            str(idx),
            f"{hook.composite:.1f}",
            hook.verbal_hook,
            hook.textual_hook,
            hook.framework,
            str(hook.word_count),
            ", ".join(flags),
        )
    console.print(table)

    for variant in result.top_three_variants:
        console.print(
            f"  [bold]{variant.rank}. {variant.variant_label}[/bold] "
            f"({variant.hook.composite:.1f}) {variant.hook.verbal_hook}"
        )
    console.print(
        f"\n  rung=[bold]{result.rung}[/bold] content_type={result.content_type} "
        f"strategy={result.content_strategy} repaired={result.repaired_count} "
        f"elapsed={result.elapsed_seconds:.2f}s"
    )


def run_generate(args: argparse.Namespace):
    settings = HookSettings.from_config()
    jitter = None
    if args.seed is not None:
        settings = replace(settings, score_seed=args.seed)
        jitter = ScoreJitter(seed=args.seed, enabled=settings.score_jitter)
    if args.no_jitter:
        jitter = ScoreJitter.disabled()

    try:
        result = generate_hooks(build_request(args), settings=settings, jitter=jitter)
    except InvalidHookRequest as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(2)

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        print_result(result)

    if args.csv:
        path = write_hooks_csv(result, Path(args.csv))
        console.print(f"  [green]CSV saved:[/green] {path}")


def run_taxonomy(args: argparse.Namespace):
    for category, formulas in HOOK_TAXONOMY.items():
        if args.category and category.lower() != args.category.lower():
            continue
        table = Table(title=category)
        table.add_column("ID", style="dim")
        table.add_column("Formula", style="bold")
        table.add_column("Driver")
        table.add_column("Risk")
        table.add_column("Template", style="cyan")
        for hook_id, row in formulas.items():
            table.add_row(hook_id, row["formula"], row["driver"], row["risk"], row["template"])
        console.print(table)


def main():
    parser = argparse.ArgumentParser(
        description="Hook Line Studio — tri-modal hook generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # -- generate command --
    gen = subparsers.add_parser("generate", help="Generate 10 ranked hooks for a topic")
    gen.add_argument("topic", help="What the video is about")
    gen.add_argument("--platform", "-p", required=True, choices=[p.value for p in Platform])
    gen.add_argument("--objective", "-o", required=True, choices=[o.value for o in Objective])
    gen.add_argument("--model-type", choices=list(config.ALLOWED_MODEL_TYPES), help="Primary model override")
    gen.add_argument("--company", help="Brand / company name")
    gen.add_argument("--role", help="Creator role")
    gen.add_argument("--industry", help="Industry")
    gen.add_argument("--audience", help="Target audience")
    gen.add_argument("--voice", help="Brand voice")
    gen.add_argument("--banned", help="Comma-separated banned terms")
    gen.add_argument("--seed", type=int, help="Seed for the cosmetic score jitter")
    gen.add_argument("--no-jitter", action="store_true", help="Disable the cosmetic score jitter")
    gen.add_argument("--json", action="store_true", help="Print the full result as JSON")
    gen.add_argument("--csv", help="Write the hooks to this CSV path")

    # -- taxonomy command --
    tax = subparsers.add_parser("taxonomy", help="Print the hook taxonomy")
    tax.add_argument("--category", help="Only this category")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging()

    if args.command == "generate":
        if not args.json:
            console.print(
                Panel(
                    "[bold]HOOK LINE STUDIO[/bold]\n"
                    "Tri-modal hook generation",
                    border_style="bright_magenta",
                )
            )
        run_generate(args)
    elif args.command == "taxonomy":
        run_taxonomy(args)


if __name__ == "__main__":
    main()

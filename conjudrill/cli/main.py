"""
CLI entry point for conjudrill.
"""

# Standard library imports
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

# Third-party imports
import typer
from rich.console import Console
from rich.table import Table

# Local application imports
from conjudrill.curriculum import CurriculumGraph, PrioritizedTense, mastery_map
from conjudrill.double_mode import DoubleModePairing
from conjudrill.exceptions import ContentLoadingError, SchedulerError
from conjudrill.models import parse_settings
from conjudrill.parser import load_content, load_progress
from conjudrill.cli._simulate_logic import simulate_logic


console = Console()

app = typer.Typer(
    name="conjudrill",
    help="Conjudrill: practice-item scheduler for Spanish conjugation drills.",
    add_completion=False,
    rich_markup_mode="markdown",
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log selection decisions to stderr."
    ),
):
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# Common typer options reused across commands
_level_option = typer.Option(  # noqa: B008
    "B1",
    "--level",
    "-l",
    help="CEFR level (A1-C2, or ALL).",
)

_progress_option = typer.Option(  # noqa: B008
    None,
    "--progress",
    help="Progress YAML file with mastery scores and due items.",
)


def _load_mastery(progress: Optional[Path]) -> Dict[str, float]:
    if progress is None:
        return {}
    return mastery_map(load_progress(progress).mastery)


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


@app.command()
def validate(
    content: Path = typer.Argument(..., help="Content YAML file to validate."),  # noqa: B008
):
    """
    Load a content file and report every invalid verb entry.

    Exits with 1 if the file cannot be loaded or any entry is invalid.
    """
    try:
        loaded = load_content(content)
    except ContentLoadingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Content: {content.name}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Verbs", str(len(loaded.verbs)))
    table.add_row("Forms", str(len(loaded.forms)))
    table.add_row(
        "Irregular verbs",
        str(sum(1 for verb in loaded.verbs if verb.type == "irregular")),
    )
    table.add_row("Errors", str(len(loaded.errors)))
    console.print(table)

    if loaded.errors:
        console.print("[bold red]Errors encountered during content loading:[/bold red]")
        for error in loaded.errors:
            console.print(f"- {error}")
        raise typer.Exit(code=1)
    console.print("[bold green]Content is valid.[/bold green]")


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


def _bucket_table(title: str, tenses: List[PrioritizedTense]) -> Table:
    table = Table(title=title)
    table.add_column("Mood", style="cyan")
    table.add_column("Tense", style="cyan")
    table.add_column("Family")
    table.add_column("Mastery", style="magenta")
    table.add_column("Readiness", style="yellow")
    table.add_column("Priority", style="green")
    for tense in tenses:
        table.add_row(
            tense.mood,
            tense.tense,
            tense.family,
            f"{tense.mastery:.0f}",
            f"{tense.readiness:.2f}",
            f"{tense.adjusted_priority:.1f}",
        )
    return table


@app.command()
def plan(
    level: str = _level_option,
    progress: Optional[Path] = _progress_option,
    futuro_subj: bool = typer.Option(
        False, "--futuro-subj", help="Include the future subjunctive tenses."
    ),
):
    """
    Render the curriculum plan for a level: core, review and exploration
    buckets, prerequisite gaps and the selection weights derived from them.
    """
    try:
        mastery = _load_mastery(progress)
        curriculum = CurriculumGraph()
        level_plan = curriculum.plan(level.upper(), mastery, futuro_subj)
        weights = curriculum.tense_weights(level_plan)
    except (ContentLoadingError, SchedulerError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    for title, bucket in (
        ("Core", level_plan.core),
        ("Review", level_plan.review),
        ("Exploration", level_plan.exploration),
        ("Prerequisite gaps", level_plan.prerequisite_gaps),
    ):
        if bucket:
            console.print(_bucket_table(title, bucket))

    weights_table = Table(title="Bucket weights", show_header=False)
    weights_table.add_column("Bucket", style="cyan")
    weights_table.add_column("Weight", style="magenta")
    for bucket_name, weight in level_plan.weights.items():
        weights_table.add_row(bucket_name, f"{weight:.2f}")
    console.print(weights_table)

    combos_table = Table(title="Tense weights")
    combos_table.add_column("Mood", style="cyan")
    combos_table.add_column("Tense", style="cyan")
    combos_table.add_column("Weight", style="magenta")
    for (mood, tense), weight in sorted(weights.items(), key=lambda kv: -kv[1]):
        combos_table.add_row(mood, tense, f"{weight:.3f}")
    console.print(combos_table)


# ---------------------------------------------------------------------------
# Simulate
# ---------------------------------------------------------------------------


def _build_settings(
    level: str,
    mode: str,
    mood: Optional[str],
    tense: Optional[str],
    region: str,
    verb_type: str,
    double: bool,
) -> Dict[str, Any]:
    settings: Dict[str, Any] = {
        "level": level.upper(),
        "practice_mode": mode,
        "region": region,
        "verb_type": verb_type,
        "double_active": double,
    }
    if mode == "specific":
        settings["specific_mood"] = mood
        settings["specific_tense"] = tense
    elif mode == "review":
        settings["review_mood"] = mood
        settings["review_tense"] = tense
    return settings


@app.command()
def simulate(
    content: Path = typer.Argument(..., help="Content YAML file."),  # noqa: B008
    level: str = _level_option,
    mode: str = typer.Option("mixed", "--mode", help="mixed, specific or review."),
    mood: Optional[str] = typer.Option(None, "--mood", help="Target mood."),
    tense: Optional[str] = typer.Option(None, "--tense", help="Target tense."),
    region: str = typer.Option("la_general", "--region", help="Dialect region."),
    verb_type: str = typer.Option(
        "all", "--verb-type", help="all, regular or irregular."
    ),
    double: bool = typer.Option(False, "--double", help="Enable double mode."),
    count: int = typer.Option(20, "--count", "-n", min=1, help="Items to select."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed."),
    progress: Optional[Path] = _progress_option,
):
    """
    Run a seeded practice session and print every selected item together with
    the tier that produced it.
    """
    raw_settings = _build_settings(level, mode, mood, tense, region, verb_type, double)
    try:
        parse_settings(raw_settings)
        report = simulate_logic(content, raw_settings, count, seed=seed, progress_path=progress)
    except (ContentLoadingError, SchedulerError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Session ({count} items)")
    table.add_column("#", style="dim")
    table.add_column("Item", style="cyan")
    table.add_column("Answer", style="green")
    table.add_column("Type")
    table.add_column("Method", style="yellow")
    for idx, result in enumerate(report.results, start=1):
        items = [result.chosen] + ([result.second] if result.second else [])
        table.add_row(
            str(idx),
            " + ".join(f"{i.lemma} {i.mood}/{i.tense} {i.person}" for i in items),
            " + ".join(i.form.value for i in items),
            result.chosen.type,
            result.selection_method,
        )
    console.print(table)

    methods_table = Table(title="Selection methods", show_header=False)
    methods_table.add_column("Method", style="cyan")
    methods_table.add_column("Count", style="magenta")
    for method, method_count in report.method_counts.most_common():
        methods_table.add_row(method, str(method_count))
    console.print(methods_table)

    if report.irregular_fraction is not None:
        console.print(f"Irregular share (recent): [magenta]{report.irregular_fraction:.0%}[/magenta]")


# ---------------------------------------------------------------------------
# Pairs
# ---------------------------------------------------------------------------


@app.command()
def pairs(
    content: Path = typer.Argument(..., help="Content YAML file."),  # noqa: B008
    level: str = _level_option,
    region: str = typer.Option("la_general", "--region", help="Dialect region."),
):
    """Report whether double mode can pair forms at a level, and with which verbs."""
    try:
        loaded = load_content(content, fail_fast=True)
        settings = parse_settings(
            {"level": level.upper(), "region": region, "double_active": True}
        )
    except (ContentLoadingError, SchedulerError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    verbs = {verb.lemma: verb for verb in loaded.verbs}
    pairing = DoubleModePairing(CurriculumGraph(), verbs)
    stats = pairing.stats(loaded.forms, settings)

    table = Table(title=f"Double mode at {settings.level}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Eligible forms", str(stats["eligible_forms"]))
    table.add_row("Verbs", str(stats["verbs"]))
    table.add_row("Viable verbs", str(stats["viable_verbs"]))
    table.add_row("Most combinations", str(stats["max_combinations"]))
    table.add_row("Top verbs", ", ".join(stats["top_verbs"]) or "-")
    console.print(table)

    if not stats["viable_verbs"]:
        console.print(
            "[yellow]No verb offers two combinations; selection will use single mode.[/yellow]"
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()

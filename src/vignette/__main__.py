"""
Command-line interface for the vignette toolkit.
"""

import click
import logging
import pathlib
import random
import requests
import sys
import typing

from stairval.notepad import create_notepad

from .corpus import CorpusDriver, ON_ERROR_POLICIES
from .ontology import OntologyLookupError, SnapshotOntology, load_snapshot
from .prevalence import PrevalenceEstimator, load_prevalence_table
from .record import dumps

DEFAULT_SNAPSHOT = pathlib.Path("data") / "snomed_snapshot.json"


@click.group()
def main():
    """vignette: synthesize plausible clinical vignettes from a medical ontology."""
    pass


def _common_options(func):
    func = click.option(
        "--log-file-path",
        type=click.Path(dir_okay=False, writable=True),
        help="Append timestamped logs to this file",
    )(func)
    func = click.option("--verbose-logging", is_flag=True, help="Also emit debug logs to stderr")(func)
    func = click.option("--seed", type=int, default=None, help="seed for reproducible output")(func)
    func = click.option(
        "-n",
        "--limit",
        type=int,
        default=-1,
        show_default=True,
        help="number of diagnoses to draw (negative: every diagnosis)",
    )(func)
    func = click.option(
        "-s",
        "--snapshot",
        "snapshot_path",
        envvar="VIGNETTE_SNAPSHOT",
        type=click.Path(dir_okay=False),
        help=f"path to the concept snapshot JSON (defaults to {DEFAULT_SNAPSHOT})",
    )(func)
    return func


@main.command(name="download")
@click.option("-u", "--url", required=True, help="where to fetch the concept snapshot from")
@click.option(
    "-d",
    "--data-path",
    "data_dir",
    default="data",
    type=click.Path(file_okay=False),
    help="where to save the snapshot (default: data)",
)
@click.option("-o", "--filename", default=None, help="file name to save as (default: last URL segment)")
def download(url: str, data_dir: str, filename: typing.Optional[str]):
    """
    Download a concept snapshot into the data folder.
    """
    datadir = pathlib.Path(data_dir)
    datadir.mkdir(parents=True, exist_ok=True)
    name = filename or url.rstrip("/").rsplit("/", 1)[-1] or DEFAULT_SNAPSHOT.name
    click.echo(f"Downloading snapshot from {url} …")
    resp = requests.get(url)
    resp.raise_for_status()

    out = datadir / name
    with open(out, "wb") as f:
        f.write(resp.content)

    click.echo(f"Saved snapshot to {out}")


@main.command(name="truths")
@_common_options
@click.option("--legacy-ranges", is_flag=True, help="reproduce historical draws that skip the last option")
def truths(
    snapshot_path: typing.Optional[str],
    limit: int,
    seed: typing.Optional[int],
    verbose_logging: bool,
    log_file_path: typing.Optional[str],
    legacy_ranges: bool,
):
    """
    Print the truth profile built for each selected diagnosis.
    """
    _configure_logging(verbose_logging, log_file_path)
    ontology = _load_ontology(_locate_snapshot(snapshot_path))
    driver = CorpusDriver(ontology, random.Random(seed), on_error="skip", legacy_ranges=legacy_ranges)
    notepad = create_notepad("truths")
    for truth in driver.build_truths(driver.select_diagnoses(limit), notepad):
        click.echo(str(truth))
    _report_issues(notepad)


@main.command(name="generate")
@_common_options
@click.option(
    "-p",
    "--prevalence",
    "prevalence_path",
    envvar="VIGNETTE_PREVALENCE",
    type=click.Path(exists=True, dir_okay=False),
    help="CSV/Excel table of prevalence estimates (concept_id, prevalence)",
)
@click.option("--scale", type=click.IntRange(min=0), default=1, show_default=True, help="records per 1/10000 prevalence")
@click.option(
    "--on-error",
    type=click.Choice(ON_ERROR_POLICIES),
    default="abort",
    show_default=True,
    help="abort the batch or skip a diagnosis whose lookups fail",
)
@click.option("--legacy-ranges", is_flag=True, help="reproduce historical draws that skip the last option")
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, writable=True),
    help="write the JSON array here instead of stdout",
)
def generate(
    snapshot_path: typing.Optional[str],
    limit: int,
    seed: typing.Optional[int],
    verbose_logging: bool,
    log_file_path: typing.Optional[str],
    prevalence_path: typing.Optional[str],
    scale: int,
    on_error: str,
    legacy_ranges: bool,
    output_path: typing.Optional[str],
):
    """
    Build a truth per diagnosis and sample it into records, weighted by prevalence.
    """
    _configure_logging(verbose_logging, log_file_path)
    ontology = _load_ontology(_locate_snapshot(snapshot_path))
    known = load_prevalence_table(prevalence_path) if prevalence_path else {}

    driver = CorpusDriver(
        ontology,
        random.Random(seed),
        prevalence=PrevalenceEstimator(ontology, known),
        scale=scale,
        on_error=on_error,
        legacy_ranges=legacy_ranges,
    )
    notepad = create_notepad("generate")
    try:
        records = driver.generate(limit, notepad)
    except OntologyLookupError:
        _report_issues(notepad)
        sys.exit(1)
    _report_issues(notepad)

    payload = dumps(records)
    if output_path:
        with open(output_path, "w", encoding="utf-8") as out_f:
            out_f.write(payload)
        click.echo(f"Wrote {len(records)} records to {output_path}", err=True)
    else:
        click.echo(payload)


def _configure_logging(verbose_logging: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose_logging else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


def _locate_snapshot(snapshot_path: typing.Optional[str]) -> pathlib.Path:
    # pick snapshot: either custom or default
    snapshot_file = pathlib.Path(snapshot_path) if snapshot_path else DEFAULT_SNAPSHOT
    if not snapshot_file.is_file():
        click.echo(f"Error: snapshot file not found at {snapshot_file}", err=True)
        sys.exit(1)
    return snapshot_file


def _load_ontology(snapshot_file: pathlib.Path) -> SnapshotOntology:
    return load_snapshot(snapshot_file)


def _report_issues(notepad):
    # if there were errors, show them
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found while generating:", err=True)
        for err in notepad.errors():
            click.echo(f"- {err}", err=True)
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found while generating:", err=True)
        for w in notepad.warnings():
            click.echo(f"- {w}", err=True)


if __name__ == "__main__":
    main()

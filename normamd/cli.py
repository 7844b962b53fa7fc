import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

import click
import yaml  # type: ignore
from dotenv import load_dotenv

from normamd import parser
from normamd.document_cache import (
    CACHE_DIR_ENV,
    load_cached_document,
    save_document,
)
from normamd.snapshot import dump_document, load_document

try:
    __version__ = version("normamd")
except PackageNotFoundError:
    __version__ = "0.0.1-dev"

# Mapping from output formats to file extensions.
EXTENSIONS = {"md": ".md", "json": ".json", "yaml": ".yaml"}

# Snapshot formats recognized by file suffix.
SNAPSHOT_SUFFIXES = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


@click.group()
@click.option("--debug/--no-debug", default=False)
@click.option("--trace/--no-trace", default=False)
@click.option(
    "--log-file",
    type=click.Path(file_okay=True, dir_okay=False),
    envvar="NORMAMD_LOG_FILE",
)
@click.version_option(__version__, prog_name="normamd")
def cli(debug: bool, trace: bool, log_file: Optional[str] = None) -> None:
    """Configure logging and load environment variables.

    Args:
        debug: Toggle debug logging.
        trace: Toggle trace logging.
        log_file: Optional path to the log file.
    """
    if trace:
        level = 1
    elif debug:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        filename=log_file,
        level=level,
        format="[%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if trace:
        logging.debug("Trace mode is on")
    if debug:
        logging.debug("Debug mode is on")
    load_dotenv()


def _write_output(content: str, final_path: Optional[Path]) -> None:
    """Write ``content`` to ``final_path`` or echo it to the console."""

    if final_path:
        final_path.write_text(content, encoding="utf-8")
    else:
        click.echo(content)


def _output_path(
    output_path: Optional[str], stem: str, output_format: str
) -> Optional[Path]:
    """Resolve the output file, generating a name inside directories."""

    if not output_path:
        return None

    final_path = Path(output_path)
    if final_path.is_dir():
        final_path = final_path / f"{stem}{EXTENSIONS[output_format]}"
    return final_path


@cli.command()
@click.argument(
    "input_path",
    metavar="INPUT",
    type=click.Path(exists=True, file_okay=True, dir_okay=False),
)
@click.option("--vigenza", default="", help="As-of date, YYYY-MM-DD.")
@click.option("--code", default="", help="Editorial code of the act.")
@click.option("--name", default="", help="Display name of the act.")
@click.option(
    "--date", "publication_date", default="", help="Publication date."
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["md", "json", "yaml"]),
    default="md",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(file_okay=True, dir_okay=True),
    default=None,
    help="Write output to FILE or DIRECTORY instead of the console.",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, dir_okay=True),
    envvar=CACHE_DIR_ENV,
    default=None,
    help="Directory caching converted documents by code and vigenza.",
)
def convert(
    input_path: str,
    vigenza: str = "",
    code: str = "",
    name: str = "",
    publication_date: str = "",
    output_format: str = "md",
    output_path: Optional[str] = None,
    cache_dir: Optional[str] = None,
) -> None:
    """Convert an AKN or NIR document to Markdown or a snapshot.

    Args:
        input_path: XML file to convert.
        vigenza: As-of date of the text version.
        code: Editorial code of the act, also the cache key.
        name: Display name of the act.
        publication_date: Publication date of the act.
        output_format: ``md``, ``json`` or ``yaml``.
        output_path: Optional file or directory for the output. When a
            directory is given, the file name is built from the code or the
            input file name.
        cache_dir: Cache directory; caching needs a document code.
    """

    cache_path = Path(cache_dir) if cache_dir else None
    use_cache = cache_path is not None and bool(code)

    document = None
    if use_cache:
        document = load_cached_document(code, vigenza, cache_path)
        if document is not None:
            logging.debug(f"Using cached copy of {code!r}")

    if document is None:
        data = Path(input_path).read_bytes()
        try:
            document = parser.from_xml(
                data,
                code=code,
                name=name,
                publication_date=publication_date,
                vigenza=vigenza,
            )
        except parser.ParseError as exc:
            raise click.ClickException(str(exc)) from exc

        if use_cache:
            save_document(document, cache_path)

    if output_format == "md":
        content = document.to_markdown()
    else:
        content = dump_document(document, output_format)

    stem = code or Path(input_path).stem
    _write_output(content, _output_path(output_path, stem, output_format))


@cli.command()
@click.argument(
    "snapshot_path",
    metavar="SNAPSHOT",
    type=click.Path(exists=True, file_okay=True, dir_okay=False),
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(file_okay=True, dir_okay=False),
    default=None,
    help="Write Markdown to FILE instead of the console.",
)
def render(snapshot_path: str, output_path: Optional[str] = None) -> None:
    """Render a JSON or YAML snapshot as Markdown."""

    path = Path(snapshot_path)
    fmt = SNAPSHOT_SUFFIXES.get(path.suffix.lower())
    if fmt is None:
        raise click.UsageError(
            f"Unsupported snapshot file {path.name!r}; "
            "expected .json, .yaml or .yml."
        )

    try:
        document = load_document(path.read_text(encoding="utf-8"), fmt)
    except (ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(str(exc)) from exc

    final_path = Path(output_path) if output_path else None
    _write_output(document.to_markdown(), final_path)


@cli.command()
@click.argument(
    "input_path",
    metavar="INPUT",
    type=click.Path(exists=True, file_okay=True, dir_okay=False),
)
def detect(input_path: str) -> None:
    """Print the dialect of an XML document, AKN or NIR."""

    dialect = parser.detect_format(Path(input_path).read_bytes())
    click.echo(dialect.value)

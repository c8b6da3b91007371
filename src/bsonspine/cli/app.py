"""
Root Typer application for the bson-spine CLI.

Commands:
    inspect   Decode every top-level document in a file and print it
    probe     Report which top-level documents are tagged (discriminated) documents
    config    Show effective settings
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from typer import Typer

from bsonspine.cli.utils import fail, output_json, output_table, read_input
from bsonspine.core.errors import BsonSpineError
from bsonspine.core.logging import LogContext, configure_logging, get_logger
from bsonspine.core.settings import DiscriminatorConfig, get_settings
from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.serialization.codecs import DiscriminatedWrapperCodec, ValueCodec
from bsonspine.serialization.context import DecodingContext
from bsonspine.serialization.conventions import DiscriminatorRegistry, create_convention
from bsonspine.serialization.registry import CodecRegistry

app = Typer(
    name="bsonspine",
    help="bson-spine: inspect binary documents and tagged polymorphic values.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

logger = get_logger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        from bsonspine import __version__

        typer.echo(f"bsonspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """bson-spine CLI. Inspect and probe binary document files."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


@app.command("inspect")
def inspect_file(
    path: Path = typer.Argument(..., help="File of concatenated documents"),
    json_out: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """Decode every top-level document with the untyped codec."""
    data = read_input(path)
    reader = BinaryDocumentReader(data)
    codec = ValueCodec()
    documents: list[Any] = []
    with LogContext(source=str(path)):
        try:
            while not reader.is_at_end_of_stream():
                documents.append(codec.decode(DecodingContext(reader)))
        except BsonSpineError as e:
            fail(e)
        logger.info("documents_inspected", count=len(documents))

    if json_out:
        output_json(documents)
        return
    for index, document in enumerate(documents):
        typer.echo(f"[{index}] {document!r}")


@app.command("probe")
def probe_file(
    path: Path = typer.Argument(..., help="File of concatenated documents"),
    field: str | None = typer.Option(  # noqa: UP007
        None, "--field", "-f", help="Discriminator field name (default from settings)"
    ),
    json_out: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """Report which top-level documents are tagged documents."""
    settings = get_settings()
    try:
        config = DiscriminatorConfig(field or settings.discriminator_field_name)
    except BsonSpineError as e:
        fail(e)
    convention = create_convention(config, DiscriminatorRegistry(), settings.discriminator_style)
    wrapper: DiscriminatedWrapperCodec[Any] = DiscriminatedWrapperCodec(convention, CodecRegistry())
    value_codec = ValueCodec()

    data = read_input(path)
    reader = BinaryDocumentReader(data)
    results: list[dict[str, Any]] = []
    with LogContext(source=str(path)):
        try:
            while not reader.is_at_end_of_stream():
                offset = reader.position
                tagged = wrapper.is_positioned_at_tagged_document(reader)
                discriminator = None
                if tagged:
                    with reader.bookmarked():
                        reader.read_start_document()
                        reader.find_element(config.field_name)
                        discriminator = value_codec.decode(DecodingContext(reader))
                reader.get_current_bson_type()
                reader.skip_value()
                results.append(
                    {"index": len(results), "offset": offset, "tagged": tagged,
                     "discriminator": discriminator}
                )
        except BsonSpineError as e:
            fail(e)
        logger.info("documents_probed", count=len(results))

    if json_out:
        output_json(results)
        return
    output_table(
        f"Tagged documents ({config.field_name} / _v)",
        ["#", "Offset", "Tagged", "Discriminator"],
        [[r["index"], r["offset"], "yes" if r["tagged"] else "no", r["discriminator"]]
         for r in results],
    )


from bsonspine.cli.config import app as config_app  # noqa: E402

app.add_typer(config_app, name="config", help="Configuration inspection.")

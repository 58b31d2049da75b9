"""
imbarch CLI

Commands:
- process: Standardize a spreadsheet of addresses and export IMB payloads
- encode: Build a single IMB payload
- check-config: Validate IMB settings
- service-types: List known Service Type IDs
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from datetime import datetime, timezone

import typer
import logging
from pydantic import ValidationError

from imbarch.imb import (
    IMBConfig,
    SERVICE_TYPES,
    encode,
    validate_config,
)
from imbarch.normalizer import DEFAULT_MODEL, GeminiNormalizer, NormalizationError
from imbarch.pipeline.output import DEFAULT_EXPORT_NAME, write_export
from imbarch.pipeline.queue import AddressRecord, RecordQueue, RecordStatus
from imbarch.pipeline.worker import RunSummary, drive
from imbarch.sources import (
    UNMAPPED,
    build_addresses,
    detect_mapping,
    read_table,
    resolve_column,
)

app = typer.Typer(add_completion=False, help="IMB address tooling")


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        # Include any custom attributes passed via `extra=`.
        reserved = {
            "name","msg","args","levelname","levelno","pathname","filename","module",
            "exc_info","exc_text","stack_info","lineno","funcName","created","msecs",
            "relativeCreated","thread","threadName","processName","process","taskName",
        }
        for k, v in record.__dict__.items():
            if k in reserved or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                payload[k] = v
            except TypeError:
                payload[k] = repr(v)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str) -> logging.Logger:
    logger = logging.getLogger("imbarch")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


LOGGER = logging.getLogger("imbarch")


def load_config(
    config_file: Path | None,
    *,
    barcode_id: str | None = None,
    service_type_id: str | None = None,
    mailer_id: str | None = None,
    start_sequence: int | None = None,
) -> IMBConfig:
    """
    Build the effective IMB config.

    Starts from defaults, applies the JSON settings file if given, then any
    option passed on the command line.
    """
    data: dict[str, Any] = {}
    if config_file is not None:
        try:
            data = json.loads(config_file.expanduser().read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            typer.echo(f"Error: Could not read config file {config_file}: {e}", err=True)
            raise typer.Exit(code=1)

    if not isinstance(data, dict):
        typer.echo(f"Error: Config file {config_file} must hold a JSON object", err=True)
        raise typer.Exit(code=1)

    overrides = {
        "barcode_id": barcode_id,
        "service_type_id": service_type_id,
        "mailer_id": mailer_id,
        "start_sequence_number": start_sequence,
    }
    for name, value in overrides.items():
        if value is not None:
            data[IMBConfig.model_fields[name].alias or name] = value

    try:
        return IMBConfig.model_validate(data)
    except ValidationError as e:
        typer.echo(f"Error: Invalid config: {e}", err=True)
        raise typer.Exit(code=1)


def report_config_issues(config: IMBConfig) -> int:
    issues = validate_config(config)
    for issue in issues:
        typer.echo(f"⚠️  {issue.path}: {issue.message}", err=True)
    return len(issues)


ConfigFileOption = typer.Option(None, "--config", help="JSON settings file (barcodeId, serviceTypeId, mailerId, startSequenceNumber)")
BarcodeIdOption = typer.Option(None, "--barcode-id", help="2-digit Barcode ID (default 00)")
ServiceTypeOption = typer.Option(None, "--service-type-id", help="3-digit Service Type ID (default 300)")
MailerIdOption = typer.Option(None, "--mailer-id", help="6 or 9 digit Mailer ID")


@app.command("encode")
def encode_cmd(
    zip_code: str = typer.Argument(..., help="5-digit ZIP code"),
    plus4: str = typer.Option("0000", "--plus4", help="ZIP+4 add-on"),
    delivery_point: str = typer.Option("00", "--delivery-point", help="2-digit delivery point"),
    sequence: int | None = typer.Option(None, "--sequence", help="Serial number (default: start sequence number)"),
    config_file: Path | None = ConfigFileOption,
    barcode_id: str | None = BarcodeIdOption,
    service_type_id: str | None = ServiceTypeOption,
    mailer_id: str | None = MailerIdOption,
) -> None:
    """Print the IMB data payload for one mailpiece."""
    config = load_config(
        config_file,
        barcode_id=barcode_id,
        service_type_id=service_type_id,
        mailer_id=mailer_id,
    )
    report_config_issues(config)
    serial = config.start_sequence_number if sequence is None else sequence
    typer.echo(encode(config, serial, zip_code, plus4, delivery_point))


@app.command("check-config")
def check_config_cmd(
    config_file: Path | None = ConfigFileOption,
    barcode_id: str | None = BarcodeIdOption,
    service_type_id: str | None = ServiceTypeOption,
    mailer_id: str | None = MailerIdOption,
    start_sequence: int | None = typer.Option(None, "--start-sequence", help="First serial number"),
) -> None:
    """Validate IMB settings against the payload field layout."""
    config = load_config(
        config_file,
        barcode_id=barcode_id,
        service_type_id=service_type_id,
        mailer_id=mailer_id,
        start_sequence=start_sequence,
    )
    typer.echo(json.dumps(config.model_dump(by_alias=True), indent=2))
    typer.echo(f"Serial number width: {config.serial_width}")

    if report_config_issues(config):
        raise typer.Exit(code=2)
    typer.echo("✅ Config valid.")


@app.command("service-types")
def service_types_cmd() -> None:
    """List known Service Type IDs."""
    for stid, label in SERVICE_TYPES:
        typer.echo(f"{stid}  {label}")


@app.command("process")
def process_cmd(
    input_file: Path = typer.Argument(..., help="Address spreadsheet (.csv or .xlsx)"),
    out: Path = typer.Option(Path(DEFAULT_EXPORT_NAME), "--out", help="Export path (.xlsx or .csv)"),
    street: str | None = typer.Option(None, "--street", help="Street / full address column (name or 0-based index)"),
    city: str | None = typer.Option(None, "--city", help="City column"),
    state: str | None = typer.Option(None, "--state", help="State column"),
    zip_column: str | None = typer.Option(None, "--zip", help="ZIP column"),
    plus4: str | None = typer.Option(None, "--plus4", help="ZIP+4 column"),
    config_file: Path | None = ConfigFileOption,
    barcode_id: str | None = BarcodeIdOption,
    service_type_id: str | None = ServiceTypeOption,
    mailer_id: str | None = MailerIdOption,
    start_sequence: int | None = typer.Option(None, "--start-sequence", help="First serial number"),
    api_key: str | None = typer.Option(None, "--api-key", envvar="GEMINI_API_KEY", help="Gemini API key"),
    model: str = typer.Option(DEFAULT_MODEL, "--model", help="Gemini model"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging verbosity (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    """
    Standardize every address in a spreadsheet and export IMB payloads.

    Columns are detected from the header row; use --street/--city/--state/
    --zip/--plus4 to override. Rows without a street value are skipped.

    Example:
        imbarch process addresses.xlsx --mailer-id 123456 --out results.xlsx
    """
    global LOGGER
    LOGGER = setup_logging(log_level)

    input_file = input_file.expanduser()
    out = out.expanduser()

    if out.suffix.lower() not in (".xlsx", ".csv"):
        typer.echo(f"Error: Unsupported export format: {out.name} (use .xlsx or .csv)", err=True)
        raise typer.Exit(code=1)

    if not input_file.exists():
        typer.echo(f"Error: Input file not found: {input_file}", err=True)
        raise typer.Exit(code=1)

    config = load_config(
        config_file,
        barcode_id=barcode_id,
        service_type_id=service_type_id,
        mailer_id=mailer_id,
        start_sequence=start_sequence,
    )
    report_config_issues(config)

    try:
        headers, rows = read_table(input_file)
        mapping = detect_mapping(headers)
        for attr, ref in (
            ("street", street),
            ("city", city),
            ("state", state),
            ("zip", zip_column),
            ("plus4", plus4),
        ):
            if ref is not None:
                setattr(mapping, attr, resolve_column(headers, ref))
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if mapping.street == UNMAPPED:
        typer.echo("Error: No street/address column found; pass --street", err=True)
        raise typer.Exit(code=1)

    addresses = build_addresses(rows, mapping)
    if not addresses:
        typer.echo("Error: No addresses found in file", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Found {len(addresses)} address(es) to process")

    queue = RecordQueue(config)
    queue.ingest(addresses)

    try:
        normalizer = GeminiNormalizer(api_key=api_key, model=model)
    except NormalizationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    def report(batch: list[AddressRecord]) -> None:
        for record in batch:
            if record.status is RecordStatus.COMPLETED:
                typer.echo(f"✅ [{record.sequence_number}] {record.imb_data}  {record.original}")
            else:
                typer.echo(f"❌ [{record.sequence_number}] Failed: {record.original}", err=True)

    async def run() -> RunSummary:
        async with normalizer:
            return await drive(queue, config, normalizer, on_batch=report)

    summary = asyncio.run(run())
    try:
        write_export(queue, out)
    except OSError as e:
        typer.echo(f"Error: Could not write export {out}: {e}", err=True)
        raise typer.Exit(code=1)

    # Final summary
    typer.echo(f"\n{'='*60}")
    typer.echo(f"📊 Summary:")
    typer.echo(f"  Records: {summary.total}")
    typer.echo(f"  Completed: {summary.completed}")
    typer.echo(f"  Failed: {summary.failed}")
    typer.echo(f"  Elapsed: {summary.elapsed_seconds:.1f}s")
    typer.echo(f"  Output: {out}")

    if not summary.success:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

"""
AquaScore CLI entrypoint: score groundwater samples and manage the sample
store (add, bulk import, update, delete, query, export).
"""

import json
import sys

import click  # type: ignore
from click import echo

from aquascore.core.config import ConfigManager, ConfigValidationError
from aquascore.core.logger import Logger
from aquascore.quality.indices import IndexEngine, MeasurementValidationError
from aquascore.schemas.sample import SampleValidationError
from aquascore.services.store import SampleStore, SampleStoreError
from aquascore.services.samples import (
    create_sample,
    delete_sample,
    import_samples,
    update_sample,
)
from aquascore.services.aggregates import (
    contamination_distribution,
    index_trend,
    map_points,
    summarize,
)
from aquascore.services.exports import export_samples_csv

logger = Logger.get_logger(__name__)

CLI_ERRORS = (
    ConfigValidationError,
    MeasurementValidationError,
    SampleValidationError,
    SampleStoreError,
    ValueError,
    OSError,
)


def _fail(message: str) -> None:
    echo(f"❌  {message}", err=True)
    sys.exit(1)


def _pairs(values, option: str) -> dict:
    """Parse repeated ``NAME=VALUE`` options into a dict of raw strings."""
    out = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME=VALUE, got '{item}'", param_hint=option)
        out[name.strip()] = value.strip()
    return out


def _read_json(fh) -> dict:
    try:
        data = json.load(fh)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise click.BadParameter("JSON payload must be an object")
    return data


def _dump(data) -> None:
    echo(json.dumps(data, indent=2, default=str))


class _Context:
    def __init__(self, config: ConfigManager) -> None:
        self.config = config
        self._engine = None
        self._store = None

    @property
    def engine(self) -> IndexEngine:
        if self._engine is None:
            self._engine = IndexEngine.from_config(self.config)
        return self._engine

    @property
    def store(self) -> SampleStore:
        if self._store is None:
            self._store = SampleStore(self.config.get_db_path(), logger=logger)
        return self._store


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True), default=None, help="YAML/TOML/JSON config file")
@click.option("--db", "db_path", type=click.Path(), default=None, help="Sample store JSON path")
@click.option("--thresholds", "thresholds_path", type=click.Path(exists=True), default=None, help="Threshold table YAML")
@click.option("--formula", type=click.Choice(list(IndexEngine.FORMULAS)), default=None, help="Index formula")
@click.option("--strict/--lenient", default=None, help="Reject invalid measurements instead of coercing them")
@click.pass_context
def cli(ctx, config_path, db_path, thresholds_path, formula, strict):
    """AquaScore: groundwater heavy-metal pollution indices."""
    Logger.setup()
    try:
        cfg = ConfigManager(config_path)
    except ConfigValidationError as e:
        _fail(str(e))
    overrides = {
        "db_path": db_path,
        "thresholds_path": thresholds_path,
        "formula": formula,
        "strict": strict,
    }
    cfg.config.update({k: v for k, v in overrides.items() if v is not None})
    ctx.obj = _Context(cfg)


@cli.command()
@click.option("--metal", "-m", multiple=True, help="Metal concentration, NAME=mg/L (repeatable)")
@click.option("--wq", "-w", multiple=True, help="Water-quality parameter, NAME=VALUE (repeatable)")
@click.option("--json", "json_file", type=click.File("r"), default=None, help="JSON file with metals/waterQuality")
@click.pass_obj
def compute(obj, metal, wq, json_file):
    """Compute HPI, MI, CD and the category for one sample without storing it."""
    sample = _read_json(json_file) if json_file else {}
    if metal:
        sample["metals"] = {**(sample.get("metals") or {}), **_pairs(metal, "--metal")}
    if wq:
        sample["waterQuality"] = {**(sample.get("waterQuality") or {}), **_pairs(wq, "--wq")}
    try:
        result = obj.engine.compute(sample)
    except CLI_ERRORS as e:
        _fail(str(e))
    _dump({**result.as_dict(), "formatted": result.formatted()})


@cli.command()
@click.argument("payload", type=click.File("r"))
@click.pass_obj
def add(obj, payload):
    """Score and store the sample described by the JSON file PAYLOAD ('-' for stdin)."""
    try:
        record = create_sample(_read_json(payload), store=obj.store, engine=obj.engine, logger=logger)
    except CLI_ERRORS as e:
        _fail(str(e))
    echo(f"✅  Sample {record.sample_id} stored as {record.id} ({record.category})")


@cli.command(name="import")
@click.argument("table", type=click.Path(exists=True))
@click.option("--ppb-divisor", type=float, default=None, help="Divisor for ppb metal columns (default 1000)")
@click.option("--column", "columns", multiple=True, help="Extra header for a field, FIELD=HEADER (repeatable)")
@click.pass_obj
def import_(obj, table, ppb_divisor, columns):
    """Bulk-import samples from a CSV or Parquet TABLE."""
    column_map: dict = {}
    for field_name, header in _pairs(columns, "--column").items():
        column_map.setdefault(field_name, []).append(header)
    divisor = ppb_divisor if ppb_divisor is not None else float(obj.config.get("ppb_divisor", 1000.0))
    try:
        report = import_samples(
            table,
            store=obj.store,
            engine=obj.engine,
            column_map=column_map,
            ppb_divisor=divisor,
            logger=logger,
        )
    except CLI_ERRORS as e:
        _fail(str(e))
    echo(f"✅  Imported {report.count} of {report.parsed} samples")
    for sample_id, message in report.errors:
        echo(f"⚠️  {sample_id}: {message}", err=True)


@cli.command(name="list")
@click.option("--category", type=click.Choice(["safe", "moderate", "unsafe"]), default=None)
@click.option("--state", default=None)
@click.option("--district", default=None)
@click.option("--map", "as_map", is_flag=True, help="Emit map markers only")
@click.pass_obj
def list_(obj, category, state, district, as_map):
    """List stored samples, newest first, as JSON."""
    try:
        if as_map:
            _dump(map_points(obj.store, category=category))
            return
        records = obj.store.find(category=category, state=state, district=district)
    except CLI_ERRORS as e:
        _fail(str(e))
    _dump([r.to_dict() for r in records])


@cli.command()
@click.argument("record_id")
@click.argument("payload", type=click.File("r"))
@click.pass_obj
def update(obj, record_id, payload):
    """Apply the JSON changes in PAYLOAD to sample RECORD_ID."""
    try:
        record = update_sample(record_id, _read_json(payload), store=obj.store, engine=obj.engine, logger=logger)
    except CLI_ERRORS as e:
        _fail(str(e))
    _dump(record.to_dict())


@cli.command()
@click.argument("record_id")
@click.pass_obj
def delete(obj, record_id):
    """Delete sample RECORD_ID."""
    try:
        record = delete_sample(record_id, store=obj.store, logger=logger)
    except CLI_ERRORS as e:
        _fail(str(e))
    echo(f"✅  Sample {record.sample_id} deleted")


@cli.command()
@click.option("--trend", is_flag=True, help="Include daily index averages")
@click.option("--distribution", is_flag=True, help="Include average concentration per metal")
@click.option("--metal", "metals", multiple=True, help="Metals for --distribution (repeatable)")
@click.pass_obj
def summary(obj, trend, distribution, metals):
    """Print sample counts and average indices as JSON."""
    try:
        out = summarize(obj.store)
        if trend:
            out["trend"] = index_trend(obj.store)
        if distribution:
            out["distribution"] = contamination_distribution(obj.store, metals or None)
    except CLI_ERRORS as e:
        _fail(str(e))
    _dump(out)


@cli.command()
@click.argument("output", type=click.Path())
@click.option("--category", type=click.Choice(["safe", "moderate", "unsafe"]), default=None)
@click.pass_obj
def export(obj, output, category):
    """Write stored samples to OUTPUT as CSV."""
    try:
        path = export_samples_csv(obj.store, output, category=category, logger=logger)
    except CLI_ERRORS as e:
        _fail(str(e))
    echo(f"✅  CSV written to `{path}`")


if __name__ == "__main__":
    cli()

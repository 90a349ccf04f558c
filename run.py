import asyncio
import json
import os
import sys

import typer
import yaml

from report_analyzer.commons.errors import DecodeFailed, InvalidInput
from report_analyzer.commons.logger import setup_logging
from report_analyzer.commons.report_engine import ReportEngine
from report_analyzer.commons.types import Settings
from report_analyzer.helpers.decoders import TextDecoder
from report_analyzer.helpers.report_store import ReportStore
from report_analyzer.services.reports_service import ReportsService

app = typer.Typer(add_completion=False, help="Lab Report Analyzer")

DEFAULT_CONFIG = "report_analyzer/configs/settings.yaml"


def resource_path(relative_path: str) -> str:
    """Devuelve la ruta absoluta a un recurso, ya sea ejecutando como .exe o en desarrollo"""
    if hasattr(sys, "_MEIPASS"):
        # Si es un ejecutable generado por PyInstaller
        base_path = sys._MEIPASS
    else:
        base_path = os.path.abspath(".")

    return os.path.join(base_path, relative_path)


def load_cfg(path: str = DEFAULT_CONFIG) -> dict:
    config_path = path if os.path.isabs(path) else resource_path(path)
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _bootstrap(config: str):
    raw = load_cfg(config)
    settings = Settings.model_validate(raw)
    logger = setup_logging(settings.paths.logs_root, os.getenv("LOG_LEVEL", "INFO"))
    try:
        engine = ReportEngine(raw)
    except InvalidInput as ex:
        logger.error(str(ex))
        raise typer.Exit(code=2)
    decoder = TextDecoder(ocr_lang=settings.ocr.get("lang", "eng"))
    return settings, logger, engine, decoder


def _service(settings: Settings, engine: ReportEngine, decoder: TextDecoder) -> ReportsService:
    store = ReportStore(settings.paths.reports)
    return ReportsService(engine, decoder, store, settings.paths.model_dump())


def _echo_json(data):
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


ConfigOpt = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Ruta a settings.yaml")


@app.command()
def analyze(
    path: str = typer.Argument(..., help="PDF o imagen del reporte"),
    as_json: bool = typer.Option(False, "--json", help="Salida JSON"),
    config: str = ConfigOpt,
):
    """Decodifica y analiza un archivo sin guardarlo."""
    _, logger, engine, decoder = _bootstrap(config)
    try:
        text = decoder.decode(path)
    except DecodeFailed as df:
        logger.error(str(df))
        raise typer.Exit(code=1)

    extracted, result = engine.analyze(text)
    if as_json:
        _echo_json(engine.to_payload(extracted, result))
        return
    if not len(result):
        typer.echo("No se reconoció ningún parámetro.")
    for e in result:
        typer.echo(f"{e.parameter:<12} {e.value:>8g} {e.unit:<6} [{e.range_display}]  {e.status.value}")
    missing = result.missing(engine.required)
    if missing:
        typer.echo(f"Faltan: {', '.join(missing)}")


@app.command()
def submit(
    path: str = typer.Argument(..., help="PDF o imagen del reporte"),
    config: str = ConfigOpt,
):
    """Registra el reporte, lo procesa y muestra el registro resultante."""
    settings, logger, engine, decoder = _bootstrap(config)
    if not os.path.isfile(path):
        logger.error(f"No existe el archivo {path}")
        raise typer.Exit(code=1)
    svc = _service(settings, engine, decoder)
    record = asyncio.run(svc.submit_and_wait(path))
    _echo_json(record.model_dump())
    if record.status == "failed":
        raise typer.Exit(code=1)


@app.command()
def watch(config: str = ConfigOpt):
    """Procesa el backlog del inbox y queda escuchando nuevas subidas."""
    settings, logger, engine, decoder = _bootstrap(config)
    logger.log("INFO", "Iniciando lectura de reportes pendientes por procesar")
    svc = _service(settings, engine, decoder)
    asyncio.run(svc.run_file_mode(settings.watch.patterns))


@app.command("list")
def list_reports(config: str = ConfigOpt):
    """Lista los reportes guardados (más recientes primero)."""
    settings = Settings.model_validate(load_cfg(config))
    for r in ReportStore(settings.paths.reports).list():
        typer.echo(f"{r.id}  {r.status:<10} {r.created_at}  {r.file_name}")


@app.command()
def show(document_id: str, config: str = ConfigOpt):
    settings = Settings.model_validate(load_cfg(config))
    try:
        record = ReportStore(settings.paths.reports).get(document_id)
    except KeyError:
        typer.echo(f"Reporte no encontrado: {document_id}", err=True)
        raise typer.Exit(code=1)
    _echo_json(record.model_dump())


@app.command()
def delete(document_id: str, config: str = ConfigOpt):
    settings = Settings.model_validate(load_cfg(config))
    try:
        ReportStore(settings.paths.reports).delete(document_id)
    except KeyError:
        typer.echo(f"Reporte no encontrado: {document_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Reporte {document_id} eliminado")


if __name__ == "__main__":
    app()

# report_analyzer/services/reports_service.py
import asyncio
import fnmatch
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set

from report_analyzer.commons.errors import DecodeFailed
from report_analyzer.commons.logger import logger
from report_analyzer.commons.report_engine import ReportEngine
from report_analyzer.commons.types import ReportRecord
from report_analyzer.helpers.decoders import TextDecoder, guess_mime
from report_analyzer.helpers.file_transport import FileWatcher
from report_analyzer.helpers.report_store import ReportStore


def _matches(name: str, patterns: List[str]) -> bool:
    low = name.lower()
    return any(fnmatch.fnmatch(low, p.lower()) for p in patterns)


class ReportsService:
    def __init__(self, engine: ReportEngine, decoder: TextDecoder, store: ReportStore, paths: dict):
        self.engine = engine
        self.decoder = decoder
        self.store = store
        self.paths = paths
        self._inflight: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        Path(paths["uploads"]).mkdir(parents=True, exist_ok=True)

    def _archive_text(self, document_id: str, text: str):
        base = Path(self.paths["logs_root"]) / "raw" / "decoded"
        base.mkdir(parents=True, exist_ok=True)
        name = f'{datetime.now().strftime("%Y%m%d_%H%M%S")}_{document_id}.txt'
        (base / name).write_text(text, encoding="utf-8")

    def accept_upload(self, src: str, move: bool = False) -> ReportRecord:
        """Copia (o mueve) el archivo a uploads/<id><ext> y crea el registro en 'processing'."""
        src_path = Path(src)
        document_id = self.store.new_id()
        dst = Path(self.paths["uploads"]) / f"{document_id}{src_path.suffix.lower()}"
        if move:
            shutil.move(str(src_path), dst)
        else:
            shutil.copy2(src_path, dst)
        return self.store.create(
            str(dst), file_name=src_path.name, file_type=guess_mime(src), document_id=document_id
        )

    async def process(self, document_id: str, path: str) -> Optional[ReportRecord]:
        """Decode + analyze one document and write the outcome exactly once.

        Returns ``None`` when the document is already being processed.
        """
        if document_id in self._inflight:
            logger.warning(f"Reporte {document_id} ya está en proceso; se ignora")
            return None
        self._inflight.add(document_id)
        try:
            # 1) texto (PDF/OCR) en un hilo: no bloquear el loop
            text = await asyncio.to_thread(self.decoder.decode, path)
            # 2) archiva crudo para diagnóstico
            self._archive_text(document_id, text)
            # 3) extrae y clasifica
            payload = self.engine.analyze_to_payload(text)
            # 4) estado final; si esta escritura falla cae al except y queda 'failed'
            record = self.store.mark_completed(document_id, payload)
        except DecodeFailed as df:
            logger.error(f"Reporte {document_id} falló: {df}")
            return self.store.mark_failed(document_id, str(df))
        except Exception as ex:
            logger.exception(f"Error procesando reporte {document_id}: {ex}")
            return self.store.mark_failed(document_id, f"Error inesperado: {ex}")
        else:
            logger.info(
                f"Reporte {document_id} completado: {len(record.analysis)} parámetros, "
                f"{len(record.abnormal_parameters)} fuera de rango"
            )
            return record
        finally:
            self._inflight.discard(document_id)

    def submit(self, src: str, move: bool = False) -> str:
        """Registra el reporte y lanza el procesamiento sin esperar (fire-and-forget)."""
        record = self.accept_upload(src, move=move)
        task = asyncio.get_running_loop().create_task(self.process(record.id, record.file_path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return record.id

    async def submit_and_wait(self, src: str, move: bool = False) -> ReportRecord:
        record = self.accept_upload(src, move=move)
        done = await self.process(record.id, record.file_path)
        return done or self.store.get(record.id)

    async def drain(self):
        """Espera las tareas lanzadas por submit()."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def on_inbox_file(self, path: str) -> Optional[str]:
        # watchdog emite created+modified para la misma subida; mover el archivo
        # (sin await de por medio) hace que los eventos tardíos no lo encuentren
        if not Path(path).exists():
            return None
        document_id = self.submit(path, move=True)
        logger.info(f"Subida detectada: {Path(path).name} -> reporte {document_id}")
        return document_id

    async def process_backlog(self, patterns: List[str]):
        inbox = Path(self.paths["inbox"])
        inbox.mkdir(parents=True, exist_ok=True)
        files = sorted(f for f in inbox.iterdir() if f.is_file() and _matches(f.name, patterns))
        if not files:
            return
        logger.info(f"Backlog detectado: {len(files)} archivo(s) en {inbox}")
        for f in files:
            # Asegura que un fallo no detenga el backlog completo
            try:
                await self.on_inbox_file(str(f))
            except Exception as ex:
                logger.exception(f"Fallo inesperado con {f}: {ex}")

    async def run_file_mode(self, patterns: List[str], stop_event: Optional[asyncio.Event] = None):
        loop = asyncio.get_running_loop()

        # 1) Procesar backlog existente
        await self.process_backlog(patterns)

        # 2) Arrancar watcher para nuevas subidas
        watcher = FileWatcher(self.paths["inbox"], patterns, self.on_inbox_file, loop)
        watcher.start()
        logger.info(f"Escuchando carpeta de reportes {self.paths['inbox']}...")
        try:
            await (stop_event or asyncio.Event()).wait()
        finally:
            watcher.stop()
            await self.drain()

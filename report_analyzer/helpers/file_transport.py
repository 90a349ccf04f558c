import asyncio
import time
from pathlib import Path
from typing import List

from watchdog.events import PatternMatchingEventHandler
from watchdog.observers import Observer


def _wait_until_written(path: Path, attempts: int = 10, delay: float = 0.05) -> bool:
    """Espera a que el tamaño del archivo se estabilice (subida aún en curso)."""
    last = -1
    for _ in range(attempts):
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return False
        if size > 0 and size == last:
            return True
        last = size
        time.sleep(delay)
    return path.exists()


# Watchdog consumer para reportes subidos a la carpeta inbox
class FileWatcher:
    def __init__(self, inbox: str, patterns: List[str], on_file_async, loop: asyncio.AbstractEventLoop):
        self.inbox = Path(inbox)
        self.inbox.mkdir(parents=True, exist_ok=True)
        self.loop = loop
        self.on_file_async = on_file_async
        self.handler = PatternMatchingEventHandler(
            patterns=list(patterns), ignore_directories=True, case_sensitive=False
        )

        def _submit(path: Path):
            # Si el archivo ya no existe, no hay nada que procesar (ya se movió a uploads)
            if not path.exists():
                return
            if not _wait_until_written(path):
                return
            # Ejecutar la corrutina en el loop principal (thread-safe)
            asyncio.run_coroutine_threadsafe(self.on_file_async(str(path)), self.loop)

        self.handler.on_created = lambda e: _submit(Path(e.src_path))
        self.handler.on_modified = lambda e: _submit(Path(e.src_path))
        self.handler.on_moved = lambda e: _submit(Path(e.dest_path))

        self.observer = Observer()

    def start(self):
        self.observer.schedule(self.handler, str(self.inbox), recursive=False)
        self.observer.start()

    def stop(self):
        self.observer.stop()
        self.observer.join()

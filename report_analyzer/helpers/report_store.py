import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from report_analyzer.commons.logger import logger
from report_analyzer.commons.types import ReportRecord

_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ReportStore:
    """One JSON file per document under ``root`` (``<id>.json``)."""

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, document_id: str) -> Path:
        if not _ID_RE.fullmatch(document_id or ""):
            raise KeyError(document_id)
        return self.root / f"{document_id}.json"

    def _write(self, record: ReportRecord) -> ReportRecord:
        # escritura atómica: tmp + replace
        tmp = self.root / f".{record.id}.json.tmp"
        tmp.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, self._path(record.id))
        return record

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def create(
        self,
        file_path: str,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
        document_id: Optional[str] = None,
    ) -> ReportRecord:
        record = ReportRecord(
            id=document_id or self.new_id(),
            file_name=file_name or Path(file_path).name,
            file_path=str(file_path),
            file_type=file_type,
            status="processing",
            created_at=_now(),
        )
        logger.info(f"Reporte {record.id} creado ({record.file_name})")
        return self._write(record)

    def get(self, document_id: str) -> ReportRecord:
        p = self._path(document_id)
        if not p.exists():
            raise KeyError(document_id)
        return ReportRecord.model_validate_json(p.read_text(encoding="utf-8"))

    def list(self) -> List[ReportRecord]:
        records = [
            ReportRecord.model_validate_json(p.read_text(encoding="utf-8"))
            for p in self.root.glob("*.json")
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def mark_completed(self, document_id: str, payload: Dict) -> ReportRecord:
        record = self.get(document_id)
        updated = record.model_copy(
            update={
                "status": "completed",
                "updated_at": _now(),
                "extracted_data": payload.get("extracted_data", {}),
                "analysis": payload.get("analysis", {}),
                "abnormal_parameters": payload.get("abnormal_parameters", []),
                "missing_parameters": payload.get("missing_parameters", []),
                "complete": bool(payload.get("complete", False)),
                "error_message": None,
            }
        )
        return self._write(updated)

    def mark_failed(self, document_id: str, message: str) -> ReportRecord:
        record = self.get(document_id)
        updated = record.model_copy(
            update={"status": "failed", "updated_at": _now(), "error_message": message}
        )
        return self._write(updated)

    def delete(self, document_id: str) -> None:
        p = self._path(document_id)
        if not p.exists():
            raise KeyError(document_id)
        p.unlink()
        logger.info(f"Reporte {document_id} eliminado")

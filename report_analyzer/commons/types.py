from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

ReportStatus = Literal["processing", "completed", "failed"]


class PathsCfg(BaseModel):
    logs_root: str = "logs"
    inbox: str = "data/inbox"
    uploads: str = "data/uploads"
    reports: str = "data/reports"


class WatchCfg(BaseModel):
    patterns: List[str] = ["*.pdf", "*.png", "*.jpg", "*.jpeg", "*.tif", "*.tiff", "*.bmp"]


class Settings(BaseModel):
    app: Dict[str, Any] = {}
    paths: PathsCfg = PathsCfg()
    watch: WatchCfg = WatchCfg()
    ocr: Dict[str, Any] = {}
    analysis: Dict[str, Any] = {}
    ranges: Dict[str, Dict[str, Any]] = {}
    parameters: Dict[str, Any] = {}


class ReportRecord(BaseModel):
    id: str
    file_name: str
    file_path: str
    file_type: Optional[str] = None
    status: ReportStatus = "processing"
    created_at: str
    updated_at: Optional[str] = None
    extracted_data: Dict[str, Optional[float]] = {}
    analysis: Dict[str, Dict[str, Any]] = {}
    abnormal_parameters: List[Dict[str, Any]] = []
    missing_parameters: List[str] = []
    complete: bool = False
    error_message: Optional[str] = None

# report_analyzer/validation/validators.py
from typing import Any, Dict, List, Union

from pydantic import BaseModel, StrictFloat, StrictInt, ValidationError, field_validator, model_validator

from report_analyzer.commons.errors import InvalidInput
from report_analyzer.parsers.catalog import BASIC_COUNTS
from report_analyzer.parsers.models import ReferenceRange


class RangeCfg(BaseModel):
    # Strict: "14" o True no son límites válidos; int se queda int para el display
    min: Union[StrictInt, StrictFloat]
    max: Union[StrictInt, StrictFloat]
    unit: str = ""

    @model_validator(mode="after")
    def _ordered(self):
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) > max ({self.max})")
        return self


class AnalysisCfg(BaseModel):
    borderline_fraction: float = 0.02
    required: List[str] = list(BASIC_COUNTS)

    @field_validator("borderline_fraction")
    @classmethod
    def _fraction(cls, v: float):
        if not 0 <= v < 0.5:
            raise ValueError("borderline_fraction debe estar en [0, 0.5)")
        return v


class CatalogValidation(BaseModel):
    analysis: AnalysisCfg = AnalysisCfg()
    ranges: Dict[str, RangeCfg]
    extra_aliases: Dict[str, List[List[str]]] = {}

    @field_validator("ranges")
    @classmethod
    def _not_empty(cls, v: Dict[str, RangeCfg]):
        if not v:
            raise ValueError("El catálogo de rangos está vacío")
        return v


def validate_catalog_or_raise(cfg: Dict[str, Any]) -> CatalogValidation:
    """Valida analysis/ranges/parameters del config; ValidationError -> InvalidInput."""
    try:
        return CatalogValidation(
            analysis=cfg.get("analysis") or {},
            ranges=cfg.get("ranges") or {},
            extra_aliases=(cfg.get("parameters") or {}).get("extra_aliases") or {},
        )
    except ValidationError as ve:
        raise InvalidInput(f"Configuración de análisis inválida: {ve}") from ve


def build_reference_ranges(catalog: CatalogValidation) -> Dict[str, ReferenceRange]:
    return {
        name: ReferenceRange(parameter=name, min=rc.min, max=rc.max, unit=rc.unit)
        for name, rc in catalog.ranges.items()
    }

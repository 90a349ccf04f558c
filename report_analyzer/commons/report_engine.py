import dataclasses
from typing import Any, Dict, Optional, Sequence, Tuple

import yaml

from report_analyzer.commons.classifier import classify
from report_analyzer.commons.errors import InvalidInput
from report_analyzer.commons.logger import logger
from report_analyzer.parsers.base import extend_definition
from report_analyzer.parsers.catalog import CBC_DEFINITIONS
from report_analyzer.parsers.extractor import extract
from report_analyzer.parsers.models import AnalysisResult, ParameterDefinition
from report_analyzer.validation.validators import build_reference_ranges, validate_catalog_or_raise

Extracted = Dict[str, Optional[float]]


class ReportEngine:
    """Engine facade: loads the range catalog and runs extract -> classify.

    Accepts a YAML path or an already-loaded dict (the ``analysis``, ``ranges``
    and ``parameters`` sections of settings.yaml).
    """

    def __init__(
        self,
        config_path_or_obj: Any,
        definitions: Sequence[ParameterDefinition] = CBC_DEFINITIONS,
    ):
        if isinstance(config_path_or_obj, str):
            with open(config_path_or_obj, "r", encoding="utf-8") as f:
                self.cfg = yaml.safe_load(f) or {}
        elif isinstance(config_path_or_obj, dict):
            self.cfg = config_path_or_obj
        else:
            raise InvalidInput(f"Config no soportada: {type(config_path_or_obj).__name__}")

        catalog = validate_catalog_or_raise(self.cfg)
        self.borderline_fraction = catalog.analysis.borderline_fraction
        self.required = tuple(catalog.analysis.required)
        self.definitions = self._with_extra_aliases(tuple(definitions), catalog.extra_aliases)
        self.ranges = self._with_default_units(build_reference_ranges(catalog), self.definitions)

        known = {d.name for d in self.definitions}
        orphan = sorted(set(self.ranges) - known)
        if orphan:
            logger.warning(f"Rangos sin definición de extracción (se ignoran): {orphan}")

    @staticmethod
    def _with_default_units(ranges: Dict, definitions) -> Dict:
        # rango sin unidad: se usa la del catálogo de parámetros
        units = {d.name: d.unit for d in definitions}
        return {
            name: dataclasses.replace(r, unit=units[name]) if not r.unit and units.get(name) else r
            for name, r in ranges.items()
        }

    @staticmethod
    def _with_extra_aliases(definitions, extra_aliases: Dict) -> Tuple[ParameterDefinition, ...]:
        names = {d.name for d in definitions}
        unknown = sorted(set(extra_aliases) - names)
        if unknown:
            raise InvalidInput(f"extra_aliases para parámetros desconocidos: {unknown}")
        return tuple(
            extend_definition(d, extra_aliases[d.name]) if extra_aliases.get(d.name) else d
            for d in definitions
        )

    def extract(self, text: str) -> Extracted:
        return extract(text, self.definitions)

    def classify(self, extracted: Extracted) -> AnalysisResult:
        return classify(extracted, self.ranges, self.borderline_fraction)

    def analyze(self, text: str) -> Tuple[Extracted, AnalysisResult]:
        extracted = self.extract(text)
        result = self.classify(extracted)
        logger.debug(
            f"Extraídos {sum(v is not None for v in extracted.values())}/{len(extracted)} "
            f"parámetros, {len(result)} clasificados"
        )
        return extracted, result

    def to_payload(self, extracted: Extracted, result: AnalysisResult) -> Dict:
        """JSON-ready dict with the shape stored on the report record."""
        return {
            "extracted_data": dict(extracted),
            "analysis": result.to_dict(),
            "abnormal_parameters": [
                {"parameter": e.parameter, "value": e.value, "status": e.status.value}
                for e in result.abnormal()
            ],
            "missing_parameters": result.missing(self.required),
            "complete": result.is_complete(self.required),
        }

    def analyze_to_payload(self, text: str) -> Dict:
        extracted, result = self.analyze(text)
        return self.to_payload(extracted, result)

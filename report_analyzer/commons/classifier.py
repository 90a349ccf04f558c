import math
import numbers
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from report_analyzer.commons.errors import InvalidInput
from report_analyzer.parsers.models import AnalysisEntry, AnalysisResult, ReferenceRange, Status

DEFAULT_BORDERLINE_FRACTION = 0.02


def _as_range(parameter: str, raw: Any) -> ReferenceRange:
    if isinstance(raw, ReferenceRange):
        return raw
    if isinstance(raw, Mapping):
        if "min" not in raw or "max" not in raw:
            raise InvalidInput(f"Rango de {parameter!r} sin min/max")
        return ReferenceRange(
            parameter=parameter, min=raw["min"], max=raw["max"], unit=raw.get("unit") or ""
        )
    raise InvalidInput(f"Rango de {parameter!r} inválido: {raw!r}")


def _within(distance: float, threshold: float) -> bool:
    # el borde es inclusivo: 14.08 - 14.0 no da exactamente 0.08 en binario
    return distance <= threshold or math.isclose(distance, threshold, rel_tol=1e-9, abs_tol=1e-12)


def status_for(value: float, rng: ReferenceRange, borderline_fraction: float) -> Status:
    # Low/High estrictos tienen prioridad; borderline solo dentro de [min, max]
    if value < rng.min:
        return Status.LOW
    if value > rng.max:
        return Status.HIGH
    threshold = (rng.max - rng.min) * borderline_fraction
    if _within(abs(value - rng.min), threshold):
        return Status.BORDERLINE_LOW
    if _within(abs(value - rng.max), threshold):
        return Status.BORDERLINE_HIGH
    return Status.NORMAL


def classify(
    extracted: Mapping,
    ranges: Mapping,
    borderline_fraction: float = DEFAULT_BORDERLINE_FRACTION,
) -> AnalysisResult:
    """Bucket every extracted value against its reference range.

    Parameters whose value is ``None`` or that have no range are left out of
    the result. Only structurally invalid arguments raise ``InvalidInput``.
    """
    if not isinstance(extracted, Mapping):
        raise InvalidInput("extracted debe ser un mapping parámetro -> valor")
    if not isinstance(ranges, Mapping):
        raise InvalidInput("ranges debe ser un mapping parámetro -> rango")
    if (
        not isinstance(borderline_fraction, numbers.Real)
        or isinstance(borderline_fraction, bool)
        or not 0 <= borderline_fraction < 0.5
    ):
        raise InvalidInput(f"borderline_fraction fuera de [0, 0.5): {borderline_fraction!r}")

    entries: List[AnalysisEntry] = []
    for parameter, value in extracted.items():
        # ausente o basura de OCR: se omite, no es error
        if not isinstance(value, numbers.Real) or isinstance(value, bool):
            continue
        if parameter not in ranges:
            continue
        rng = _as_range(parameter, ranges[parameter])
        entries.append(
            AnalysisEntry(
                parameter=parameter,
                value=value,
                unit=rng.unit,
                range_display=rng.display,
                status=status_for(value, rng, borderline_fraction),
            )
        )
    return AnalysisResult(entries=tuple(entries))


def ranges_from_dict(raw: Optional[Dict[str, Any]]) -> Dict[str, ReferenceRange]:
    return {name: _as_range(name, r) for name, r in (raw or {}).items()}

from typing import Dict, Optional, Sequence

from report_analyzer.commons.errors import InvalidInput

from .models import ParameterDefinition


def _to_float(token: Optional[str]) -> Optional[float]:
    if token is None:
        return None
    try:
        return float(token)
    except ValueError:
        return None


def extract_one(text: str, definition: ParameterDefinition) -> Optional[float]:
    # primera regla que hace match gana; dentro de la regla, primer match del documento
    for rule in definition.patterns:
        token = rule.search(text)
        if token is not None:
            return _to_float(token)
    return None


def extract(text: str, definitions: Sequence[ParameterDefinition]) -> Dict[str, Optional[float]]:
    """Locate each parameter's numeric value in raw OCR/PDF text.

    Returns ``{name: value}`` in ``definitions`` order; a parameter that is not
    found maps to ``None`` (never 0, never an error).
    """
    if not isinstance(text, str):
        raise InvalidInput(f"text debe ser str, no {type(text).__name__}")

    out: Dict[str, Optional[float]] = {}
    for d in definitions:
        if not isinstance(d, ParameterDefinition):
            raise InvalidInput(f"Definición inválida: {d!r}")
        out[d.name] = extract_one(text, d)
    return out

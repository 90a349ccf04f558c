import re
from typing import Iterable, Sequence

from .models import ParameterDefinition, PatternRule

# Separadores tolerados entre el nombre y el valor (":", "=", espacios, saltos de línea...)
_MAX_GAP = 40
_VALUE = r"(?P<value>\d+(?:\.\d+)?)"
_LEFT = r"(?<![A-Za-z0-9])"
_RIGHT = r"(?![A-Za-z0-9])"


def _split_alias(alias: str) -> list:
    return [p for p in re.split(r"[\s\-.]+", alias.strip()) if p]


def alias_pattern(alias: str) -> str:
    """'rdw-cv' -> 'rdw[\\s\\-.]*cv' (tolera 'RDW CV', 'RDW-CV', 'R.D.W-CV')."""
    parts = _split_alias(alias)
    if not parts:
        raise ValueError(f"Alias vacío: {alias!r}")
    return r"[\s\-.]*".join(re.escape(p) for p in parts)


def build_rule(aliases: Iterable[str], not_after: Iterable[str] = ()) -> PatternRule:
    """Compila una regla: alias (cualquiera) + separadores + número.

    ``not_after`` lista palabras que no pueden preceder al alias, p.ej.
    'corpuscular' para que 'Hemoglobin' no capture 'Mean Corpuscular Hemoglobin'.
    """
    # alias largos primero para que 'wbc count' gane sobre 'wbc'
    ordered = tuple(sorted(dict.fromkeys(a.strip() for a in aliases if a.strip()), key=len, reverse=True))
    if not ordered:
        raise ValueError("Una regla necesita al menos un alias")
    names = "|".join(alias_pattern(a) for a in ordered)
    regex = re.compile(
        rf"{_LEFT}(?:{names}){_RIGHT}[^A-Za-z0-9]{{0,{_MAX_GAP}}}?{_VALUE}",
        re.IGNORECASE,
    )
    return PatternRule(aliases=ordered, regex=regex, guard=_guard(not_after))


def _guard(not_after: Iterable[str]):
    # misma línea, con cualquier cantidad de espacios/guiones/puntos antes del alias
    words = [alias_pattern(w) for w in not_after if w.strip()]
    if not words:
        return None
    return re.compile(rf"{_LEFT}(?:{'|'.join(words)})[ \t\-.]*$", re.IGNORECASE)


def build_definition(
    name: str, unit: str, alias_groups: Sequence[Sequence[str]], not_after: Iterable[str] = ()
) -> ParameterDefinition:
    not_after = tuple(not_after)
    return ParameterDefinition(
        name=name,
        patterns=tuple(build_rule(group, not_after) for group in alias_groups),
        unit=unit,
    )


def extend_definition(
    definition: ParameterDefinition, alias_groups: Sequence[Sequence[str]]
) -> ParameterDefinition:
    """Nueva definición con reglas extra al final (los sinónimos son aditivos)."""
    extra = tuple(build_rule(group) for group in alias_groups)
    return ParameterDefinition(
        name=definition.name, patterns=definition.patterns + extra, unit=definition.unit
    )

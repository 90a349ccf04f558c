# ===============================
# File: report_analyzer/parsers/models.py
# ===============================
import numbers
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from report_analyzer.commons.errors import InvalidInput

Number = Union[int, float]


class Status(str, Enum):
    LOW = "Low"
    BORDERLINE_LOW = "BorderlineLow"
    NORMAL = "Normal"
    BORDERLINE_HIGH = "BorderlineHigh"
    HIGH = "High"


@dataclass(frozen=True)
class PatternRule:
    aliases: Tuple[str, ...]
    regex: re.Pattern = field(compare=False, repr=False)
    # texto que no puede preceder al alias (se evalúa contra lo anterior al match)
    guard: Optional[re.Pattern] = field(default=None, compare=False, repr=False)

    def search(self, text: str) -> Optional[str]:
        """Return the numeric token of the first unguarded match in document order."""
        for m in self.regex.finditer(text):
            if self.guard is not None and self.guard.search(text[max(0, m.start() - 80) : m.start()]):
                continue
            return m.group("value")
        return None


@dataclass(frozen=True)
class ParameterDefinition:
    name: str
    patterns: Tuple[PatternRule, ...]
    unit: str = ""


def _is_number(v) -> bool:
    # bool es subclase de int: no se acepta como límite
    return isinstance(v, numbers.Real) and not isinstance(v, bool)


@dataclass(frozen=True)
class ReferenceRange:
    parameter: str
    min: Number
    max: Number
    unit: str = ""

    def __post_init__(self):
        if not _is_number(self.min) or not _is_number(self.max):
            raise InvalidInput(
                f"Rango de {self.parameter!r} inválido: min={self.min!r}, max={self.max!r}"
            )
        if self.min > self.max:
            raise InvalidInput(f"Rango de {self.parameter!r} inválido: min > max")

    @property
    def display(self) -> str:
        # conserva la precisión con la que se configuró (14.0 -> "14.0", 80 -> "80")
        return f"{self.min}-{self.max}"


@dataclass(frozen=True)
class AnalysisEntry:
    parameter: str
    value: float
    unit: str
    range_display: str
    status: Status

    @property
    def is_abnormal(self) -> bool:
        return self.status in (Status.LOW, Status.HIGH)


@dataclass(frozen=True)
class AnalysisResult:
    entries: Tuple[AnalysisEntry, ...] = ()

    def __iter__(self) -> Iterator[AnalysisEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, parameter) -> bool:
        return self.get(parameter) is not None

    @property
    def parameters(self) -> List[str]:
        return [e.parameter for e in self.entries]

    def get(self, parameter: str) -> Optional[AnalysisEntry]:
        return next((e for e in self.entries if e.parameter == parameter), None)

    def abnormal(self) -> List[AnalysisEntry]:
        return [e for e in self.entries if e.is_abnormal]

    def flagged(self) -> List[AnalysisEntry]:
        return [e for e in self.entries if e.status != Status.NORMAL]

    def missing(self, required: Iterable[str]) -> List[str]:
        return [p for p in required if p not in self]

    def is_complete(self, required: Iterable[str]) -> bool:
        return not self.missing(required)

    def to_dict(self) -> Dict[str, Dict]:
        return {
            e.parameter: {
                "value": e.value,
                "unit": e.unit,
                "range": e.range_display,
                "status": e.status.value,
            }
            for e in self.entries
        }

from typing import Dict, Tuple

from .base import build_definition
from .models import ParameterDefinition

# Panel CBC. Cada lista interna es una regla; las reglas se prueban en orden.
CBC_ALIASES: Dict[str, Tuple[str, list]] = {
    "hemoglobin": ("g/dL", [["hemoglobin", "haemoglobin"], ["hgb", "hb"]]),
    "wbc": (
        "K/mcL",
        [
            ["white blood cell count", "white blood cells", "total leucocyte count", "total leukocyte count"],
            ["wbc count", "total wbc", "wbc", "tlc"],
        ],
    ),
    "rbc": (
        "M/mcL",
        [["red blood cell count", "red blood cells", "rbc count", "total rbc"], ["rbc"]],
    ),
    "platelets": ("K/mcL", [["platelet count", "platelets"], ["plt", "platelet"]]),
    "hematocrit": ("%", [["hematocrit", "haematocrit", "packed cell volume"], ["hct", "pcv"]]),
    "mcv": ("fL", [["mean corpuscular volume", "mean cell volume"], ["mcv"]]),
    "mch": (
        "pg",
        [
            [
                "mean corpuscular hemoglobin",
                "mean corpuscular haemoglobin",
                "mean cell hemoglobin",
                "mean cell haemoglobin",
            ],
            ["mch"],
        ],
    ),
    "mchc": (
        "g/dL",
        [
            [
                "mean corpuscular hemoglobin concentration",
                "mean corpuscular haemoglobin concentration",
                "mean cell hemoglobin concentration",
                "mean cell haemoglobin concentration",
            ],
            ["mchc"],
        ],
    ),
    "rdw": ("%", [["red cell distribution width", "rdw-cv"], ["rdw"]]),
}


# "Mean Corpuscular Hemoglobin" / "Mean Cell Hemoglobin" no son hemoglobina
NOT_AFTER: Dict[str, Tuple[str, ...]] = {"hemoglobin": ("corpuscular", "cell")}


def _build_cbc() -> Tuple[ParameterDefinition, ...]:
    return tuple(
        build_definition(name, unit, groups, NOT_AFTER.get(name, ()))
        for name, (unit, groups) in CBC_ALIASES.items()
    )


CBC_DEFINITIONS: Tuple[ParameterDefinition, ...] = _build_cbc()

# Los cuatro conteos básicos que exige un reporte "completo"
BASIC_COUNTS = ("hemoglobin", "wbc", "rbc", "platelets")

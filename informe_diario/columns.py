"""Column policy for the patient table and its exports.

The order of ``COLUMNS`` is the order of the on-screen table and of the HTML
report; ``EXPORT_COLUMNS`` is the order of the spreadsheet. Experimental
columns hold fields whose extraction accuracy is not yet trusted and are
hidden unless the user turns them on.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

ATENCION = "atencion"


@dataclass(frozen=True)
class ColumnDescriptor:
    key: str
    label: str
    export_label: str
    mandatory: bool = False
    experimental: bool = False


COLUMNS: tuple[ColumnDescriptor, ...] = (
    ColumnDescriptor("noProgresivo", "No.", "No.", mandatory=True),
    ColumnDescriptor("nombreDerechohabiente", "Nombre del Paciente", "Nombre del Paciente", mandatory=True),
    ColumnDescriptor("diagnosticoPrincipal", "Diagnóstico Principal", "Diagnóstico Principal"),
    ColumnDescriptor("numeroSeguridadSocial", "NSS", "NSS"),
    ColumnDescriptor("horaCita", "Hora Cita", "Hora Cita"),
    ColumnDescriptor(ATENCION, "Inicio y Fin de Atencion", "Inicio y Fin de Atencion"),
    ColumnDescriptor("primeraVez", "1ra Vez", "1ra Vez"),
    ColumnDescriptor("numeroRecetas", "Recetas", "Recetas"),
    ColumnDescriptor("diasIncapacidad", "Días Incap.", "Días Incap."),
    ColumnDescriptor("alta", "Alta", "Alta"),
    ColumnDescriptor("paseOtraUnidad", "Pase Unidad", "Pase Unidad", experimental=True),
    ColumnDescriptor("riesgoTrabajo", "Riesgo Trab.", "Riesgo Trab.", experimental=True),
    ColumnDescriptor("agregadoMedico", "Agregado Médico", "Agregado Médico", experimental=True),
)

# Spreadsheet rows carry every field, including the raw attention times.
EXPORT_COLUMNS: tuple[ColumnDescriptor, ...] = (
    *COLUMNS[:6],
    ColumnDescriptor("inicioAtencion", "Inicio Atención", "Inicio Atención"),
    ColumnDescriptor("finAtencion", "Fin Atención", "Fin Atención"),
    *COLUMNS[6:],
)

_BY_KEY = {column.key: column for column in COLUMNS}


def get_column(key: str) -> ColumnDescriptor:
    return _BY_KEY[key]


def default_visibility(column: ColumnDescriptor) -> bool:
    return not column.experimental


def configurable_columns() -> list[ColumnDescriptor]:
    return [column for column in COLUMNS if not column.mandatory]


def _visibility(column: ColumnDescriptor, value: bool | None) -> bool:
    # A null entry means "no choice recorded".
    return default_visibility(column) if value is None else bool(value)


def visible_for(preferences: Mapping[str, bool | None] | None) -> list[ColumnDescriptor]:
    """Columns to display, in table order, for a user's visibility map.

    The row number and patient name are always present.
    """
    preferences = preferences or {}
    visible = []
    for column in COLUMNS:
        if column.mandatory or _visibility(column, preferences.get(column.key)):
            visible.append(column)
    return visible


def default_preferences() -> dict[str, bool]:
    return {column.key: default_visibility(column) for column in configurable_columns()}


def merge_preferences(stored: Mapping[str, bool | None] | None) -> dict[str, bool]:
    """Effective visibility map: defaults overlaid with the stored choices.

    Stored entries are sparse (only what the user toggled), so every entry,
    experimental columns included, is an explicit choice and wins over the
    default. Unknown keys, mandatory keys and null values are ignored.
    """
    merged = default_preferences()
    for key, value in (stored or {}).items():
        column = _BY_KEY.get(key)
        if column is None or column.mandatory or value is None:
            continue
        merged[key] = bool(value)
    return merged


def preferences_to_store(visibility: Mapping[str, bool]) -> dict[str, bool]:
    """Sparse form of a visibility map: only the entries that differ from the defaults."""
    defaults = default_preferences()
    return {
        key: bool(value)
        for key, value in visibility.items()
        if key in defaults and bool(value) != defaults[key]
    }

"""Presentation of an ``ExtractionResult``: table view, spreadsheet and HTML report.

Everything here is a pure function of the result and the options; the stored
result is never modified (redaction and column filtering only affect output).
"""

from __future__ import annotations

import io
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from informe_diario.columns import ATENCION, EXPORT_COLUMNS, ColumnDescriptor, visible_for
from informe_diario.models import ExtractionResult, PatientRecord
from informe_diario.privacy import redact_nss
from informe_diario.timespan import calculate_consultation_hours, format_atencion

SHEET_NAME = "Registros de Pacientes"
HTML_SUFFIX = "_reporte.html"
XLSX_SUFFIX = "_pacientes.xlsx"

_HEADER_FONT = Font(bold=True, color="FFFFFFFF")
_HEADER_FILL = PatternFill(start_color="FF334155", end_color="FF334155", fill_type="solid")

_templates = Environment(
    loader=PackageLoader("informe_diario", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class TableView:
    columns: list[dict[str, str]]
    rows: list[dict[str, Any]]


@dataclass(frozen=True)
class ReportOptions:
    file_name: str
    extraction_date: str = ""
    visible_columns: Mapping[str, bool] = field(default_factory=dict)
    hide_nss_identifier: bool = False


def cell_value(record: PatientRecord, key: str, hide_nss_identifier: bool = False) -> str:
    if key == ATENCION:
        return format_atencion(record.inicio_atencion, record.fin_atencion)
    wire = record.as_wire()
    if key == "numeroSeguridadSocial":
        return redact_nss(wire[key], hide_nss_identifier)
    return wire.get(key, "")


def _cells(record: PatientRecord, columns: list[ColumnDescriptor], hide_nss_identifier: bool) -> dict[str, str]:
    return {column.key: cell_value(record, column.key, hide_nss_identifier) for column in columns}


def build_table_view(
    result: ExtractionResult,
    preferences: Mapping[str, bool] | None = None,
    hide_nss_identifier: bool = False,
) -> TableView:
    columns = visible_for(preferences)
    rows = [
        {"key": record.no_progresivo, "cells": _cells(record, columns, hide_nss_identifier)}
        for record in result.patient_records
    ]
    return TableView(
        columns=[{"key": column.key, "label": column.label} for column in columns],
        rows=rows,
    )


def build_export_rows(result: ExtractionResult) -> list[dict[str, str]]:
    """One flat row per record, keyed by export label, every column included."""
    return [
        {column.export_label: cell_value(record, column.key) for column in EXPORT_COLUMNS}
        for record in result.patient_records
    ]


def build_workbook(result: ExtractionResult) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_NAME

    labels = [column.export_label for column in EXPORT_COLUMNS]
    ws.append(labels)
    for col in range(1, len(labels) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for row in build_export_rows(result):
        ws.append([row[label] for label in labels])

    for col, label in enumerate(labels, start=1):
        width = max([len(label)] + [len(str(ws.cell(row=r, column=col).value or "")) for r in range(2, ws.max_row + 1)])
        ws.column_dimensions[get_column_letter(col)].width = min(width + 2, 60)
    ws.freeze_panes = "A2"

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_html_report(result: ExtractionResult, options: ReportOptions) -> str:
    view = build_table_view(result, options.visible_columns, options.hide_nss_identifier)
    details = result.report_details
    return _templates.get_template("report.html").render(
        file_name=options.file_name,
        report_date=details.fecha or options.extraction_date,
        details=details,
        consultation_hours=calculate_consultation_hours(result.patient_records),
        patient_count=len(result.patient_records),
        view=view,
    )


def export_filename(source_name: str, kind: str) -> str:
    stem = PurePath(source_name or "reporte").name
    if stem.lower().endswith(".pdf"):
        stem = stem[:-4]
    if kind == "html":
        return stem + HTML_SUFFIX
    if kind == "xlsx":
        return stem + XLSX_SUFFIX
    raise ValueError(f"Unknown export kind: {kind}")

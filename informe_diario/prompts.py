"""Extraction ruleset for the IMSS "informe diario de labores" form.

The PDF text layer is column-blind: cell values come out in reading order
with no grid structure, and several flag columns ("1ra VEZ", "PASE A
ESPECIALIDAD", "ALTA", "PASE A OTRA UNIDAD") sit side by side. Each field rule
therefore names its landmarks, the literal that wins, worked examples taken
from real reports, and the neighbour it is most often confused with.

Bump ``RULESET_VERSION`` and add a line to ``RULESET_REVISIONS`` on every
wording change; the worked examples double as test fixtures.
"""

from __future__ import annotations

from dataclasses import dataclass

RULESET_VERSION = "5"

RULESET_REVISIONS: tuple[tuple[str, str], ...] = (
    ("1", "Initial header and patient-row rules."),
    ("2", "primeraVez: literal SI/NO text wins over marks; SI takes priority."),
    ("3", "agregadoMedico: concatenate every unlabeled sub-column, space separated, in order."),
    ("4", "alta/paseOtraUnidad: anchor both on DÍAS DE INCAPACIDAD and RIESGO DE TRABAJO."),
    ("5", "Warn about PASE A ESPECIALIDAD; numeric cells left blank stay empty, never '0'."),
)


@dataclass(frozen=True)
class FieldRule:
    key: str
    landmark: str
    description: str
    instruction: str
    examples: tuple[str, ...] = ()
    confusable_with: str | None = None

    def render(self) -> str:
        lines = [f"*   **{self.key}** ({self.landmark}): {self.instruction}"]
        for example in self.examples:
            lines.append(f"    - Example: {example}")
        if self.confusable_with:
            lines.append(f"    - WARNING: do not confuse with {self.confusable_with}.")
        return "\n".join(lines)


HEADER_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        key="nombreMedico",
        landmark="NOMBRE DEL MÉDICO(A) NO FAMILIAR",
        description="Nombre completo del médico, junto a 'NOMBRE DEL MÉDICO(A) NO FAMILIAR'.",
        instruction="Extract the full name printed next to the label.",
        examples=('"MERAZ RICO ROGELIO" -> "MERAZ RICO ROGELIO".',),
    ),
    FieldRule(
        key="fecha",
        landmark="FECHA D M A",
        description="Fecha del informe en formato DD/MM/AAAA, combinando los campos D, M, A.",
        instruction="The date is split into D, M and A boxes. Join them as a single DD/MM/AAAA string.",
        examples=('"03 11 2025" -> "03/11/2025".',),
    ),
    FieldRule(
        key="titular",
        landmark="MATRICULA DEL PRESTADOR DE LA ATENCIÓN / TITULAR",
        description="Número de matrícula del titular, en 'MATRICULA DEL PRESTADOR DE LA ATENCIÓN'.",
        instruction="Take the number under TITULAR inside the MATRICULA DEL PRESTADOR DE LA ATENCIÓN block.",
        examples=('"98023992" -> "98023992".',),
    ),
    FieldRule(
        key="unidadMedica",
        landmark="UNIDAD MÉDICA (tipo y número)",
        description="Nombre de la unidad médica, usualmente en la parte superior.",
        instruction="Extract the value of the UNIDAD MÉDICA (tipo y número) label.",
        examples=('"HGS 9 PTO. PEÑASCO" -> "HGS 9 PTO. PEÑASCO".',),
    ),
    FieldRule(
        key="consultorio",
        landmark="CONSULTORIO",
        description="Nombre del consultorio.",
        instruction="Extract the value of the CONSULTORIO label exactly as written.",
        examples=('"Trauma_Orto" -> "Trauma_Orto".',),
    ),
    FieldRule(
        key="turno",
        landmark="TURNO: M/V",
        description="Turno de la consulta (M/V).",
        instruction="Extract the single letter marked for the shift.",
        examples=('"TURNO: M/V  V" -> "V".',),
    ),
)

RECORD_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        key="noProgresivo",
        landmark="No. PROGRESIVO",
        description="Número progresivo que identifica la fila del paciente.",
        instruction="One patient row per number (1, 2, 3, ...). Emit one record per row and keep the number as written.",
    ),
    FieldRule(
        key="nombreDerechohabiente",
        landmark="NOMBRE DEL DERECHOHABIENTE",
        description="Nombre completo del paciente.",
        instruction="The patient's full name in the row.",
    ),
    FieldRule(
        key="numeroSeguridadSocial",
        landmark="NÚMERO DE SEGURIDAD SOCIAL",
        description="Número de seguridad social del paciente.",
        instruction=(
            "The number printed below the patient's name, including the hyphen and the digits after it "
            "(format digits-suffix). Do not drop the suffix."
        ),
        examples=('"4391 87 6543-1M1985OR" -> "4391876543-1M1985OR".',),
    ),
    FieldRule(
        key="agregadoMedico",
        landmark="AGREGADO MÉDICO",
        description="Valores concatenados de las sub-columnas bajo 'AGREGADO MÉDICO'.",
        instruction=(
            "The AGREGADO MÉDICO header spans several small, unlabeled sub-columns located between the "
            "NÚMERO DE SEGURIDAD SOCIAL and HORA CITA. Read across the patient's row and concatenate every "
            "value (numbers and letters) from these sub-columns, in order, separated by single spaces."
        ),
        examples=("for No. Progresivo 1 the values are 6, F, 1, 5, 0, P, E -> \"6 F 1 5 0 P E\".",),
        confusable_with="HORA CITA, which always has the HH:MM shape",
    ),
    FieldRule(
        key="horaCita",
        landmark="HORA CITA",
        description="Hora de la cita programada.",
        instruction="The scheduled appointment time, HH:MM.",
    ),
    FieldRule(
        key="inicioAtencion",
        landmark="INICIO ATENCIÓN",
        description="Hora en que inició la atención.",
        instruction="The time the consultation started, HH:MM, immediately after HORA CITA.",
    ),
    FieldRule(
        key="finAtencion",
        landmark="FIN ATENCIÓN",
        description="Hora en que finalizó la atención.",
        instruction="The time the consultation ended, HH:MM, immediately after INICIO ATENCIÓN.",
    ),
    FieldRule(
        key="primeraVez",
        landmark="1ra. VEZ (SI/NO)",
        description="Indica si es la primera vez del paciente ('SI' o 'NO').",
        instruction=(
            "The column group immediately after FIN ATENCIÓN, split into SI and NO sub-columns. If the "
            "literal text \"SI\" appears in the patient's row in this area the value is \"SI\"; if the "
            "literal text \"NO\" appears the value is \"NO\". The literal SI always wins over any other "
            "mark. If neither literal is present, return an empty string."
        ),
        examples=('patient #8 -> "SI".', 'patient #9 -> "NO".'),
        confusable_with="PASE A ESPECIALIDAD, whose X marks are not SI/NO answers",
    ),
    FieldRule(
        key="diagnosticoPrincipal",
        landmark="DIAGNÓSTICO PRINCIPAL",
        description="Texto del diagnóstico principal junto a la etiqueta 'DIAGNÓSTICO PRINCIPAL'.",
        instruction="Extract the full descriptive text that follows the DIAGNÓSTICO PRINCIPAL label in the patient's section.",
        examples=(
            'patient #1 -> "Gonartrosis, no especificada".',
            'patient #3 -> "Fractura de los huesos de otro(s) dedo(s) del pie".',
        ),
    ),
    FieldRule(
        key="numeroRecetas",
        landmark="NÚMERO DE RECETAS",
        description="Número de recetas emitidas (columna 7).",
        instruction=(
            "The number in the NÚMERO DE RECETAS column (column 7 of the grid), immediately before PASE A "
            "ESPECIALIDAD. Copy the digit only if one is printed; a blank cell is an empty string, never \"0\"."
        ),
        examples=('row 1 prints 0 -> "0".',),
        confusable_with="PASE A ESPECIALIDAD, the column right after it, whose marks are not counts",
    ),
    FieldRule(
        key="alta",
        landmark="ALTA",
        description="'X' si la columna 'ALTA' está marcada, si no, vacío.",
        instruction=(
            "The ALTA column sits immediately before DÍAS DE INCAPACIDAD and after PASE A ESPECIALIDAD. If it "
            "is marked (e.g. with an X) the value is \"X\"; otherwise an empty string."
        ),
        examples=('patient #6 -> "X".',),
        confusable_with="PASE A ESPECIALIDAD (the column just before ALTA) and PASE A OTRA UNIDAD",
    ),
    FieldRule(
        key="diasIncapacidad",
        landmark="DÍAS DE INCAPACIDAD",
        description="Número de días de incapacidad otorgados.",
        instruction="The number in DÍAS DE INCAPACIDAD, immediately after ALTA. A blank cell is an empty string, never \"0\".",
        examples=('patient #6 -> "1".',),
        confusable_with="RIESGO DE TRABAJO, the next column, which often holds the same digit",
    ),
    FieldRule(
        key="riesgoTrabajo",
        landmark="RIESGO DE TRABAJO",
        description="Código del riesgo de trabajo.",
        instruction="The code in RIESGO DE TRABAJO, immediately after DÍAS DE INCAPACIDAD. A blank cell is an empty string, never \"0\".",
        examples=('patient #6 -> "1".',),
        confusable_with="DÍAS DE INCAPACIDAD, which often holds the same digit",
    ),
    FieldRule(
        key="paseOtraUnidad",
        landmark="PASE A OTRA UNIDAD",
        description="'X' si la columna 'PASE A OTRA UNIDAD' está marcada, si no, vacío.",
        instruction=(
            "The last column of the grid, immediately after RIESGO DE TRABAJO. If it is marked the value is "
            "\"X\"; otherwise an empty string."
        ),
        examples=('patient #6 -> "" (ALTA is marked, this column is not).',),
        confusable_with="ALTA and PASE A ESPECIALIDAD; a mark in those columns never belongs here",
    ),
)

EXTRACTION_SYSTEM_PROMPT = f"""
You are a specialized data extraction AI for medical consultation reports from IMSS Mexico
(ruleset v{RULESET_VERSION}).
Requirements:
- Output STRICT JSON only, adhering to the provided schema.
- All fields are strings. If a value is not present, provide an empty string "".
- Never invent values; never replace an empty cell with "0".
""".strip()


def field_rules() -> tuple[FieldRule, ...]:
    return HEADER_RULES + RECORD_RULES


def build_extraction_prompt(pdf_text: str) -> str:
    header = "\n".join(rule.render() for rule in HEADER_RULES)
    records = "\n".join(rule.render() for rule in RECORD_RULES)
    return f"""
Analyze the text extracted from the PDF below and extract the report into the structured JSON format.

**Extraction Rules:**

1.  **reportDetails (Header Information):**
{header}

2.  **patientRecords (Rows of Data):**
    Iterate through each row identified by a "No. PROGRESIVO" number and extract:
{records}

**PDF Text Content:**
---
{pdf_text}
---
""".strip()

"""
The ruleset's worked examples are golden fixtures: a wording change that drops
one of them, or breaks the 1:1 pairing with the schema, must fail here.
"""

import pytest

from informe_diario.models import PatientRecord, ReportHeader, wire_keys
from informe_diario.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    HEADER_RULES,
    RECORD_RULES,
    RULESET_REVISIONS,
    RULESET_VERSION,
    build_extraction_prompt,
)
from informe_diario.schema import (
    EXTRACTION_SCHEMA,
    gemini_response_schema,
    header_fields,
    record_fields,
)


def test_schema_sections_required():
    assert EXTRACTION_SCHEMA["required"] == ["reportDetails", "patientRecords"]
    assert len(header_fields()) == 6
    assert len(record_fields()) == 14


def test_schema_matches_models():
    assert header_fields() == wire_keys(ReportHeader)
    assert record_fields() == wire_keys(PatientRecord)


def test_every_leaf_is_a_string():
    header = EXTRACTION_SCHEMA["properties"]["reportDetails"]["properties"]
    record = EXTRACTION_SCHEMA["properties"]["patientRecords"]["items"]["properties"]
    for prop in list(header.values()) + list(record.values()):
        assert prop["type"] == "string"
        assert prop["description"]


def test_rules_pair_one_to_one_with_schema():
    assert [rule.key for rule in HEADER_RULES] == header_fields()
    assert [rule.key for rule in RECORD_RULES] == record_fields()


@pytest.mark.parametrize(
    "key",
    ["primeraVez", "alta", "paseOtraUnidad", "numeroRecetas", "agregadoMedico", "diasIncapacidad", "riesgoTrabajo"],
)
def test_ambiguous_fields_carry_examples_and_warning(key):
    rule = next(rule for rule in RECORD_RULES if rule.key == key)
    assert rule.examples
    assert rule.confusable_with


def test_flag_columns_are_anchored_on_landmarks():
    rules = {rule.key: rule.instruction for rule in RECORD_RULES}
    assert "immediately after FIN ATENCIÓN" in rules["primeraVez"]
    assert "immediately before DÍAS DE INCAPACIDAD" in rules["alta"]
    assert "immediately after RIESGO DE TRABAJO" in rules["paseOtraUnidad"]
    assert "The literal SI always wins" in rules["primeraVez"]


def test_numeric_fields_never_default_to_zero():
    rules = {rule.key: rule.instruction for rule in RECORD_RULES}
    for key in ("numeroRecetas", "diasIncapacidad", "riesgoTrabajo"):
        assert 'never "0"' in rules[key]


def test_prompt_contains_golden_examples():
    prompt = build_extraction_prompt("texto")
    for expected in (
        '"6 F 1 5 0 P E"',
        '"03/11/2025"',
        'patient #8 -> "SI"',
        'patient #9 -> "NO"',
        '"Gonartrosis, no especificada"',
        "PASE A ESPECIALIDAD",
    ):
        assert expected in prompt


def test_prompt_inserts_text_verbatim():
    text = "  No. PROGRESIVO 1  PEREZ\n\n  4391 87 6543-1M1985OR  "
    prompt = build_extraction_prompt(text)
    assert f"---\n{text}\n---" in prompt


def test_version_is_current_revision_and_advertised():
    assert RULESET_REVISIONS[-1][0] == RULESET_VERSION
    assert f"v{RULESET_VERSION}" in EXTRACTION_SYSTEM_PROMPT


def test_gemini_schema_dialect():
    schema = gemini_response_schema()
    assert schema["type"] == "OBJECT"
    assert "$schema" not in schema and "title" not in schema
    records = schema["properties"]["patientRecords"]
    assert records["type"] == "ARRAY"
    assert records["items"]["properties"]["alta"]["type"] == "STRING"
    assert records["items"]["required"] == record_fields()
    # the local JSON Schema is left untouched
    assert EXTRACTION_SCHEMA["type"] == "object"

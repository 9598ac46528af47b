import json

import pytest

from informe_diario.errors import EmptyResponse, IncompleteResult, InvalidJSON, MalformedResponse
from informe_diario.normalizer import normalize_response, strip_code_fence


def test_fenced_and_bare_json_are_equivalent(sample_response_text):
    bare = normalize_response(sample_response_text)
    fenced = normalize_response(f"```json\n{sample_response_text}\n```")
    plain_fence = normalize_response(f"```\n{sample_response_text}\n```")
    assert bare == fenced == plain_fence


def test_strip_code_fence_leaves_bare_text_alone():
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'
    assert strip_code_fence("```json\n{}\n```") == "{}"
    assert strip_code_fence(None) == ""


def test_header_and_records_are_parsed(sample_response_text):
    result = normalize_response(sample_response_text)
    assert result.report_details.nombre_medico == "MERAZ RICO ROGELIO"
    assert result.report_details.fecha == "03/11/2025"
    assert [record.no_progresivo for record in result.patient_records] == ["1", "2", "6"]
    assert result.patient_records[2].alta == "X"
    assert result.patient_records[0].agregado_medico == "6 F 1 5 0 P E"


def test_nss_whitespace_is_removed(sample_response_text):
    result = normalize_response(sample_response_text)
    assert result.patient_records[0].numero_seguridad_social == "4391876543-1M1985OR"
    assert result.patient_records[1].numero_seguridad_social == "1234567890-12"


def test_missing_and_null_fields_become_empty(sample_payload):
    record = sample_payload["patientRecords"][0]
    del record["agregadoMedico"]
    record["alta"] = None
    record["numeroRecetas"] = 0
    sample_payload["reportDetails"]["turno"] = None

    result = normalize_response(json.dumps(sample_payload))

    assert result.patient_records[0].agregado_medico == ""
    assert result.patient_records[0].alta == ""
    assert result.patient_records[0].numero_recetas == "0"
    assert result.report_details.turno == ""


def test_empty_record_list_is_valid(sample_payload):
    sample_payload["patientRecords"] = []
    result = normalize_response(json.dumps(sample_payload))
    assert result.patient_records == ()


@pytest.mark.parametrize("raw", ["", "   ", "```json\n```", None])
def test_empty_response(raw):
    with pytest.raises(EmptyResponse):
        normalize_response(raw)


def test_truncated_json_is_invalid(sample_response_text):
    with pytest.raises(InvalidJSON):
        normalize_response(sample_response_text[: len(sample_response_text) // 2])


def test_missing_records_section(sample_payload):
    del sample_payload["patientRecords"]
    with pytest.raises(IncompleteResult, match="patientRecords"):
        normalize_response(json.dumps(sample_payload))


def test_null_header_section(sample_payload):
    sample_payload["reportDetails"] = None
    with pytest.raises(IncompleteResult, match="reportDetails"):
        normalize_response(json.dumps(sample_payload))


@pytest.mark.parametrize("raw", ["[]", '"text"', "42"])
def test_non_object_payload(raw):
    with pytest.raises(IncompleteResult):
        normalize_response(raw)


def test_records_must_be_a_list(sample_payload):
    sample_payload["patientRecords"] = {"noProgresivo": "1"}
    with pytest.raises(IncompleteResult):
        normalize_response(json.dumps(sample_payload))


def test_nested_objects_fail_validation(sample_payload):
    sample_payload["patientRecords"][0]["diagnosticoPrincipal"] = {"text": "Gonartrosis"}
    with pytest.raises(IncompleteResult):
        normalize_response(json.dumps(sample_payload))


def test_all_failures_share_a_base():
    for raw in ("", "{", "[]"):
        with pytest.raises(MalformedResponse):
            normalize_response(raw)

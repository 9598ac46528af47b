from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent.parent))

from informe_diario.columns import merge_preferences
from informe_diario.gemini_client import GeminiClient
from informe_diario.pipeline import run_extraction
from informe_diario.report import ReportOptions, build_html_report, build_workbook, export_filename


def main() -> None:
    parser = argparse.ArgumentParser(description="Extract an IMSS daily consultation report PDF into structured JSON")
    parser.add_argument("--pdf", required=True, help="Path to the report PDF")
    parser.add_argument("--out", required=True, help="Path to write JSON output")
    parser.add_argument("--xlsx", action="store_true", help="Also write the patient spreadsheet next to the JSON")
    parser.add_argument("--html", action="store_true", help="Also write the standalone HTML report next to the JSON")
    parser.add_argument("--hide-nss", action="store_true", help="Drop the NSS identifier suffix in the HTML report")
    parser.add_argument("--json-model", default=None, help="Gemini model for the structured extraction step")
    parser.add_argument("--gemini-api-key", default=None, help="Optional Gemini API key override")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    result = run_extraction(
        args.pdf,
        GeminiClient(api_key=args.gemini_api_key),
        model_json=args.json_model,
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(result.as_wire(), indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"Wrote extraction JSON to {out_path}")

    source_name = Path(args.pdf).name
    if args.xlsx:
        xlsx_path = out_path.parent / export_filename(source_name, "xlsx")
        xlsx_path.write_bytes(build_workbook(result))
        print(f"Wrote spreadsheet to {xlsx_path}")
    if args.html:
        html_path = out_path.parent / export_filename(source_name, "html")
        html = build_html_report(
            result,
            ReportOptions(
                file_name=source_name,
                visible_columns=merge_preferences(None),
                hide_nss_identifier=args.hide_nss,
            ),
        )
        html_path.write_text(html, encoding="utf-8")
        print(f"Wrote HTML report to {html_path}")


if __name__ == "__main__":
    main()

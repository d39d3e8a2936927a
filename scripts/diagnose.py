#!/usr/bin/env python3
"""Run a finance capability diagnostic from the command line.

    python -m scripts.diagnose --answers answers.json --output report.json
    python -m scripts.diagnose --list
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from engine.config import load_settings
from engine.report_builder import build_report
from engine.scoring import MalformedScoreError
from engine.taxonomy_validator import SpecViolation
from schemas.answers import AnswerSheet
from schemas.calibration import CalibrationParams, PlanningContextParams
from spec_packs.loader import SpecPackNotFound, SpecPackVersionError, list_packs, load_pack

_log = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Score questionnaire answers against a spec pack and write the report JSON."
    )
    parser.add_argument("--answers", help="Path to answers JSON ([{question_id, value}] or {id: value})")
    parser.add_argument("--output", help="Path to report JSON output (default: stdout)")
    parser.add_argument("--family", help="Spec pack family (default: FINDIAG_SPEC_FAMILY or fpa)")
    parser.add_argument("--version", dest="spec_version", help="Spec pack version (e.g. v2.9.0)")
    parser.add_argument("--calibration", help="Path to calibration JSON {importance_map, locked}")
    parser.add_argument("--context", help="Path to planning context JSON")
    parser.add_argument("--run-id", help="Explicit run id (default: content hash)")
    parser.add_argument("--list", action="store_true", help="List available spec packs and exit")
    return parser.parse_args(argv)


def _load_json(path: Path):
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _load_answers(path: Path) -> AnswerSheet:
    payload = _load_json(path)
    if isinstance(payload, dict):
        return AnswerSheet.from_mapping(payload)
    return AnswerSheet.from_inputs(payload)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list:
        for pack in list_packs():
            print(f"{pack['pack_id']:<16} {pack['schema']:<11} {pack['name']}")
        return 0

    if not args.answers:
        print("error: --answers is required unless --list is given", file=sys.stderr)
        return 2

    try:
        pack = load_pack(args.family or settings.spec_family,
                         args.spec_version or settings.spec_version)
        calibration = (
            CalibrationParams.model_validate(_load_json(Path(args.calibration)))
            if args.calibration else None
        )
        context = (
            PlanningContextParams.model_validate(_load_json(Path(args.context)))
            if args.context else None
        )
        report = build_report(
            pack.spec,
            _load_answers(Path(args.answers)),
            run_id=args.run_id,
            calibration=calibration,
            context=context,
            settings=settings,
        )
    except (SpecPackNotFound, SpecPackVersionError, SpecViolation) as exc:
        _log.error("Spec pack error: %s", exc)
        return 1
    except (ValidationError, MalformedScoreError) as exc:
        _log.error("Invalid input: %s", exc)
        return 1

    text = json.dumps(report, indent=2, sort_keys=True)
    if not args.output:
        print(text)
        return 0

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text + "\n", encoding="utf-8")
    print(f"Diagnostic report written: {output_path} "
          f"(Level {report['maturity_v2']['actual_level']}, "
          f"{len(report['critical_risks'])} critical risk(s))")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

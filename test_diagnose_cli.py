import json

from scripts.diagnose import main


def test_writes_report(tmp_path):
    answers = tmp_path / "answers.json"
    answers.write_text(json.dumps({"fpa_l1_q01": False, "fpa_l1_q02": True}), encoding="utf-8")
    context = tmp_path / "context.json"
    context.write_text(json.dumps({"team_size": 12, "time_horizon": "24m"}), encoding="utf-8")
    output = tmp_path / "out" / "report.json"

    code = main([
        "--answers", str(answers), "--context", str(context),
        "--version", "v2.9.0", "--run-id", "cli-1", "--output", str(output),
    ])

    assert code == 0
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["run_id"] == "cli-1"
    assert report["spec_version"] == "v2.9.0"
    assert report["critical_risks"][0]["question_id"] == "fpa_l1_q01"
    assert report["capacity_plan"]["time_horizon"] == "24m"


def test_unknown_version_fails(tmp_path):
    answers = tmp_path / "answers.json"
    answers.write_text("[]", encoding="utf-8")
    assert main(["--answers", str(answers), "--version", "v0.0.1"]) == 1


def test_invalid_calibration_fails(tmp_path):
    answers = tmp_path / "answers.json"
    answers.write_text("[]", encoding="utf-8")
    calibration = tmp_path / "calibration.json"
    calibration.write_text(json.dumps({"importance_map": {"obj_fpa_l1_budget": 9}}), encoding="utf-8")
    assert main(["--answers", str(answers), "--calibration", str(calibration)]) == 1


def test_list_packs(capsys):
    assert main(["--list"]) == 0
    assert "fpa-v2.9.0" in capsys.readouterr().out


def test_answers_required():
    assert main([]) == 2

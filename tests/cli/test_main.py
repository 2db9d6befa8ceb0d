# Standard library imports
import re
from unittest.mock import patch

# Third-party imports
import pytest
from typer.testing import CliRunner

# Local application imports
from conjudrill.cli.main import app, main


runner = CliRunner()


def strip_ansi(text: str) -> str:
    """
    Remove ANSI escape sequences (color and control codes) from text.

    Parameters:
        text (str): Input string that may contain ANSI escape sequences.

    Returns:
        str: The input string with all ANSI escape sequences removed.
    """
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


def normalize_output(text: str) -> str:
    """Strip ANSI codes and collapse every run of whitespace into one space."""
    text = strip_ansi(text)
    return re.sub(r"\s+", " ", text).strip()


VALID_CONTENT = """
verbs:
  - lemma: hablar
    paradigms:
      - mood: indicative
        tense: pres
        forms: {1s: hablo, 2s_tu: hablas, 3s: habla, 1p: hablamos, 3p: hablan}
      - mood: indicative
        tense: pretIndef
        forms: {1s: hablé, 2s_tu: hablaste, 3s: habló, 1p: hablamos, 3p: hablaron}
  - lemma: ser
    type: irregular
    paradigms:
      - mood: indicative
        tense: pres
        forms: {1s: soy, 2s_tu: eres, 3s: es, 1p: somos, 3p: son}
      - mood: indicative
        tense: impf
        forms: {1s: era, 2s_tu: eras, 3s: era, 1p: éramos, 3p: eran}
"""

PRESENT_ONLY_CONTENT = """
verbs:
  - lemma: comer
    paradigms:
      - mood: indicative
        tense: pres
        forms: {1s: como, 3s: come}
"""

INVALID_CONTENT = """
verbs:
  - lemma: hablar
    paradigms:
      - mood: indicative
        tense: pres
        forms: {1s: hablo}
  - lemma: comer
    type: sometimes
"""

PROGRESS = """
mastery:
  - mood: indicative
    tense: pres
    score: 90
  - mood: indicative
    tense: impf
    score: 50
"""


@pytest.fixture
def content_files(tmp_path):
    """
    Create content and progress YAML files for CLI tests.

    Creates:
    - `valid.yml`: two verbs over three tenses.
    - `present.yml`: one verb in the present only.
    - `invalid.yml`: one valid verb and one with an unknown verb type.
    - `progress.yml`: mastery scores for two tenses.
    """
    files = {
        "valid": VALID_CONTENT,
        "present": PRESENT_ONLY_CONTENT,
        "invalid": INVALID_CONTENT,
        "progress": PROGRESS,
    }
    paths = {}
    for name, content in files.items():
        path = tmp_path / f"{name}.yml"
        path.write_text(content, encoding="utf-8")
        paths[name] = path
    return paths


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


class TestValidateCommand:
    def test_valid_content(self, content_files):
        result = runner.invoke(app, ["validate", str(content_files["valid"])])
        output = normalize_output(result.stdout)
        assert result.exit_code == 0
        assert "Content is valid." in output
        assert re.search(r"Verbs\W+2\b", output)
        assert re.search(r"Forms\W+20\b", output)

    def test_invalid_content(self, content_files):
        result = runner.invoke(app, ["validate", str(content_files["invalid"])])
        output = normalize_output(result.stdout)
        assert result.exit_code == 1
        assert "Errors encountered during content loading:" in output
        assert "Lemma: 'comer'" in output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.yml")])
        assert result.exit_code == 1
        assert "File not found." in normalize_output(result.stdout)


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


class TestPlanCommand:
    def test_plan_for_level(self):
        result = runner.invoke(app, ["plan", "--level", "b1"])
        output = normalize_output(result.stdout)
        assert result.exit_code == 0
        assert "Core" in output
        assert "Bucket weights" in output
        assert "Tense weights" in output

    def test_plan_with_progress(self, content_files):
        result = runner.invoke(app, ["plan", "-l", "B1", "--progress", str(content_files["progress"])])
        assert result.exit_code == 0
        assert "Prerequisite gaps" in normalize_output(result.stdout)

    def test_unknown_level(self):
        result = runner.invoke(app, ["plan", "--level", "Z9"])
        assert result.exit_code == 1
        assert "Unknown level" in normalize_output(result.stdout)


# ---------------------------------------------------------------------------
# Simulate
# ---------------------------------------------------------------------------


class TestSimulateCommand:
    def test_mixed_session(self, content_files):
        result = runner.invoke(
            app, ["simulate", str(content_files["valid"]), "--count", "5", "--seed", "1"]
        )
        output = normalize_output(result.stdout)
        assert result.exit_code == 0
        assert "Session (5 items)" in output
        assert "Selection methods" in output
        assert "Irregular share (recent)" in output

    def test_same_seed_same_session(self, content_files):
        args = ["simulate", str(content_files["valid"]), "-n", "6", "--seed", "7"]
        first = runner.invoke(app, args)
        second = runner.invoke(app, args)
        assert first.exit_code == 0
        assert strip_ansi(first.stdout) == strip_ansi(second.stdout)

    def test_specific_without_target(self, content_files):
        result = runner.invoke(
            app, ["simulate", str(content_files["valid"]), "--mode", "specific"]
        )
        assert result.exit_code == 1
        assert "Invalid settings field" in normalize_output(result.stdout)

    def test_specific_session(self, content_files):
        result = runner.invoke(
            app,
            [
                "simulate", str(content_files["valid"]),
                "--mode", "specific", "--mood", "indicative", "--tense", "pres",
                "-n", "4", "--seed", "3",
            ],
        )
        assert result.exit_code == 0
        assert "indicative/pres" in normalize_output(result.stdout)

    def test_invalid_content_file(self, content_files):
        result = runner.invoke(app, ["simulate", str(content_files["invalid"])])
        assert result.exit_code == 1
        assert "Error:" in normalize_output(result.stdout)


# ---------------------------------------------------------------------------
# Pairs
# ---------------------------------------------------------------------------


class TestPairsCommand:
    def test_viable_verbs(self, content_files):
        result = runner.invoke(app, ["pairs", str(content_files["valid"])])
        output = normalize_output(result.stdout)
        assert result.exit_code == 0
        assert "Double mode at B1" in output
        assert re.search(r"Viable verbs\W+2\b", output)

    def test_no_viable_verbs(self, content_files):
        result = runner.invoke(app, ["pairs", str(content_files["present"])])
        output = normalize_output(result.stdout)
        assert result.exit_code == 0
        assert re.search(r"Viable verbs\W+0\b", output)
        assert "selection will use single mode" in output


def test_main_reports_unexpected_error():
    with patch("conjudrill.cli.main.app", side_effect=RuntimeError("kaboom")):
        with pytest.raises(SystemExit) as exc_info:
            main()
    assert exc_info.value.code == 1

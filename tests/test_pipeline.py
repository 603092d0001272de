"""
Directory pipeline tests

Tests the stages run by the command line entry point on real directories:
environment check, scan, per-file conversion and the final report.
"""

from argparse import Namespace

import pytest

from templo2twig.__main__ import (
    env_check,
    parser,
    results_report,
    sources_scan,
    template_convert,
    templates_convert,
)
from templo2twig.models import ProgramState, pipeline


@pytest.fixture
def templates(tmp_path):
    inputdir = tmp_path / "in"
    inputdir.mkdir()
    (inputdir / "page.mtt").write_text("<p>::if a::x::end::</p>", encoding="utf-8")
    (inputdir / "lib.mtt").write_text('<macros><macro name="m()">y</macro></macros>', encoding="utf-8")
    (inputdir / "notes.txt").write_text("::ignored::", encoding="utf-8")
    (inputdir / "sub").mkdir()
    (inputdir / "sub" / "deep.mtt").write_text("<p></p>", encoding="utf-8")
    return inputdir


def state_make(inputdir, outputdir, pattern="*.mtt"):
    return ProgramState(inputdir=inputdir, outputdir=outputdir, pattern=pattern)


class TestStages:

    def test_state_from_namespace(self, tmp_path):
        """Only known options become state fields"""
        options = Namespace(pattern="a*.mtt", verbosity=2, unrelated=True)
        state = ProgramState.state_createFromNamespace(options, tmp_path, tmp_path / "out")
        assert state.pattern == "a*.mtt"
        assert state.verbosity == 2
        assert state.outputdir == tmp_path / "out"

    def test_defaults(self):
        assert parser.get_default("pattern") == "*.mtt"
        assert parser.get_default("verbosity") == 1

    def test_env_check_creates_output(self, templates, tmp_path):
        outputdir = tmp_path / "out" / "twig"
        state = env_check(state_make(templates, outputdir))
        assert state.envOK
        assert outputdir.is_dir()

    def test_env_check_missing_input(self, tmp_path, capsys):
        """A missing input directory is reported and the run goes on"""
        state = env_check(state_make(tmp_path / "nope", tmp_path / "out"))
        assert not state.envOK
        assert "Input directory not found" in capsys.readouterr().err
        assert sources_scan(state).sourceFiles == []

    def test_scan_is_not_recursive(self, templates, tmp_path):
        state = sources_scan(env_check(state_make(templates, tmp_path / "out")))
        assert [path.name for path in state.sourceFiles] == ["lib.mtt", "page.mtt"]

    def test_stages_do_not_mutate_input(self, templates, tmp_path):
        initial = state_make(templates, tmp_path / "out")
        env_check(initial)
        assert not initial.envOK


class TestConversion:

    def test_template(self, templates, tmp_path):
        conversion = template_convert(templates / "page.mtt", tmp_path)
        assert conversion.ok
        assert not conversion.isMacroLibrary
        assert conversion.output == tmp_path / "page.twig"
        assert conversion.output.read_text(encoding="utf-8") == "<p>{% if a %}x{% endif %}</p>"

    def test_library_detected(self, templates, tmp_path):
        conversion = template_convert(templates / "lib.mtt", tmp_path)
        assert conversion.isMacroLibrary
        assert (tmp_path / "lib.twig").read_text(encoding="utf-8") == "{% macro m() %}y{% endmacro %}"

    def test_failure_is_reported(self, templates, tmp_path, capsys):
        """A broken template is reported and nothing is written for it"""
        (templates / "broken.mtt").write_text("<p>::end::</p>", encoding="utf-8")
        conversion = template_convert(templates / "broken.mtt", tmp_path)
        assert not conversion.ok
        assert conversion.output is None
        assert not (tmp_path / "broken.twig").exists()
        assert "broken.mtt" in capsys.readouterr().err

    def test_write_failure_propagates(self, templates, tmp_path):
        with pytest.raises(OSError):
            template_convert(templates / "page.mtt", tmp_path / "missing")


class TestPipeline:

    def test_full_run(self, templates, tmp_path):
        outputdir = tmp_path / "out"
        state = pipeline(
            state_make(templates, outputdir),
            env_check,
            sources_scan,
            templates_convert,
            results_report,
        )
        assert len(state.conversions) == 2
        assert state.failures == []
        assert sorted(path.name for path in outputdir.iterdir()) == ["lib.twig", "page.twig"]

    def test_failures_exit_nonzero_after_converting_the_rest(self, templates, tmp_path):
        (templates / "broken.mtt").write_text("::if a::", encoding="utf-8")
        outputdir = tmp_path / "out"
        with pytest.raises(SystemExit) as excinfo:
            pipeline(
                state_make(templates, outputdir),
                env_check,
                sources_scan,
                templates_convert,
                results_report,
            )
        assert excinfo.value.code == 1
        assert (outputdir / "page.twig").exists()
        assert not (outputdir / "broken.twig").exists()

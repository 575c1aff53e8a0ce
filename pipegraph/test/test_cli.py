import json

import pytest

from pipegraph.compile_from_json import _pipeline_name_to_filename, main
from pipegraph.compiler.deserialiser import pipeline_to_dict
from pipegraph.library.pipelines import DOCUMENT_QA


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PIPEGRAPH_COMPLEXITY_THRESHOLD", "PIPEGRAPH_RUNTIME_MODULE", "PIPEGRAPH_RUNTIME_CLASS"):
        monkeypatch.delenv(name, raising=False)


def write_graph(tmp_path, doc, name="graph.json"):
    path = tmp_path / name
    path.write_text(json.dumps(doc), encoding="utf-8")
    return str(path)


class TestCompileFromJson:

    def test_writes_script_and_requirements(self, tmp_path, capsys):
        graph = write_graph(tmp_path, pipeline_to_dict(DOCUMENT_QA))
        out_dir = tmp_path / "build"

        assert main([graph, "--out", str(out_dir)]) == 0

        script = out_dir / "document_q_a_pipeline.py"
        assert script.exists()
        compile(script.read_text(encoding="utf-8"), str(script), "exec")
        requirements = (out_dir / "requirements.txt").read_text(encoding="utf-8").splitlines()
        assert requirements == [
            "pipegraph-runtime[documents]>=1.0",
            "pipegraph-runtime[llm]>=1.0",
            "pipegraph-runtime[vectors]>=1.0",
        ]
        stdout = capsys.readouterr().out
        assert "[pipegraph-compile] pipeline : Document Q&A Pipeline" in stdout
        assert "pdf-input-1 -> " in stdout

    def test_template_print(self, capsys):
        assert main(["--template", "quick-answer", "--print"]) == 0
        stdout = capsys.readouterr().out
        assert stdout.startswith("#!/usr/bin/env python3")
        assert "def run_pipeline(" in stdout

    def test_rejected_pipeline_reports_every_error(self, tmp_path, capsys):
        graph = write_graph(tmp_path, {"nodes": [], "edges": []})
        assert main([graph, "--print"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "[error] StructuralError: missing input node" in captured.err
        assert "[error] StructuralError: missing output node" in captured.err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "absent.json")]) == 1
        assert "[error] File not found" in capsys.readouterr().err

    def test_schema_error(self, tmp_path, capsys):
        graph = write_graph(tmp_path, {"nodes": "nope"})
        assert main([graph]) == 1
        assert "[error] Schema validation failed: nodes must be a list" in capsys.readouterr().err

    def test_threshold_warning(self, capsys):
        assert main(["--template", "document-qa", "--print", "--threshold", "1"]) == 0
        err = capsys.readouterr().err
        assert "[warning] Pipeline has many processing nodes" in err

    def test_negative_threshold(self, capsys):
        assert main(["--template", "document-qa", "--print", "--threshold", "-1"]) == 1
        assert "complexity_threshold must be >= 0" in capsys.readouterr().err

    def test_bad_threshold_in_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("PIPEGRAPH_COMPLEXITY_THRESHOLD", "lots")
        assert main(["--template", "document-qa", "--print"]) == 1
        err = capsys.readouterr().err
        assert "[error] PIPEGRAPH_COMPLEXITY_THRESHOLD must be an integer" in err
        assert "Traceback" not in err

    def test_bad_runtime_class_in_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("PIPEGRAPH_RUNTIME_CLASS", "a.B")
        assert main(["--template", "document-qa", "--print"]) == 1
        assert "[error] runtime_class must be a Python identifier" in capsys.readouterr().err

    def test_source_is_required(self):
        with pytest.raises(SystemExit):
            main([])

    def test_file_and_template_are_exclusive(self, tmp_path):
        graph = write_graph(tmp_path, pipeline_to_dict(DOCUMENT_QA))
        with pytest.raises(SystemExit):
            main([graph, "--template", "document-qa"])


class TestFilename:

    @pytest.mark.parametrize("name,expected", [
        ("Document Q&A Pipeline", "document_q_a_pipeline.py"),
        ("  spaced  out  ", "spaced_out.py"),
        ("???", "pipeline.py"),
    ])
    def test_pipeline_name_to_filename(self, name, expected):
        assert _pipeline_name_to_filename(name) == expected

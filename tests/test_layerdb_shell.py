# Run with   python -m pytest tests

import io

import pytest

from layerdb_shell import MissingArgument, Shell, main, tokenize


def run_script(text):
    out = io.StringIO()
    ended = Shell(out=out).run(tokenize(io.StringIO(text)))
    return ended, out.getvalue().splitlines()


class TestShell:
    def test_basic_scenario(self):
        ended, lines = run_script(
            "SET a 10\nGET a\nSET b 10\nNUMEQUALTO 10\nSET b 30\nNUMEQUALTO 10\n"
            "UNSET a\nGET a\nNUMEQUALTO 10\nEND\n"
        )
        assert ended
        assert lines == ["10", "2", "1", "NULL", "0"]

    def test_nested_scenario(self):
        ended, lines = run_script(
            "BEGIN\nSET a 10\nBEGIN\nSET a 20\nGET a\nROLLBACK\nGET a\n"
            "COMMIT\nGET a\nROLLBACK\nEND\n"
        )
        assert ended
        assert lines == ["20", "10", "10", "NO TRANSACTION"]

    def test_commit_without_transaction(self):
        _, lines = run_script("COMMIT\n")
        assert lines == ["NO TRANSACTION"]

    def test_keywords_case_insensitive_args_verbatim(self):
        _, lines = run_script("set Key Val\nget Key\nget key\n")
        assert lines == ["Val", "NULL"]

    def test_tokens_span_lines_and_whitespace(self):
        _, lines = run_script("SET\n a   \t 1\n\nGET a")
        assert lines == ["1"]

    def test_unknown_command_continues(self):
        _, lines = run_script("FROB\nSET a 1\nGET a\n")
        assert lines == ["Unexpected command: FROB", "1"]

    def test_end_stops_processing(self):
        ended, lines = run_script("GET a\nEND\nGET a\n")
        assert ended
        assert lines == ["NULL"]

    def test_exhausted_without_end(self):
        ended, lines = run_script("SET a 1\nGET a\n")
        assert not ended
        assert lines == ["1"]

    def test_missing_argument_is_fatal(self):
        with pytest.raises(MissingArgument):
            run_script("SET a\n")


class TestMain:
    def test_runs_files_with_shared_store(self, tmp_path, capsys):
        first = tmp_path / "one.txt"
        first.write_text("BEGIN\nSET a 10\nCOMMIT\n")
        second = tmp_path / "two.txt"
        second.write_text("GET a\nNUMEQUALTO 10\nEND\nGET a\n")
        assert main([str(first), str(second)]) == 0
        assert capsys.readouterr().out.splitlines() == ["10", "1"]

    def test_missing_argument_exit_code(self, tmp_path, capsys):
        script = tmp_path / "bad.txt"
        script.write_text("SET a 1\nGET")
        assert main([str(script)]) == 1
        captured = capsys.readouterr()
        assert "Missing argument for GET" in captured.err

    def test_unreadable_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.txt")]) == 1
        assert "Error reading" in capsys.readouterr().err

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("SET x y\nGET x\n"))
        assert main([]) == 0
        assert capsys.readouterr().out.splitlines() == ["y"]

import pytest

from duckscript.main import main


def test_valid_script(tmp_path, capsys):
    path = script(tmp_path, "const id = x => x;\nid(1);\n")
    assert main([path]) == 0
    assert capsys.readouterr().out == "ok\n"


def test_invalid_script(tmp_path, capsys):
    path = script(tmp_path, "foo;\n")
    assert main([path]) == 1
    assert capsys.readouterr().out == "Line 1..1 col 0..3: Undeclared variable foo\n"


def test_type_at_position(tmp_path, capsys):
    path = script(tmp_path, "const id = x => x;\n")
    assert main([path, "1", "7"]) == 0
    assert capsys.readouterr().out == "id<a> :: a -> a\n"


def test_line_without_column(tmp_path):
    path = script(tmp_path, "const n = 1;\n")
    with pytest.raises(SystemExit):
        main([path, "1"])


def script(tmp_path, text):
    path = tmp_path / "script.js"
    path.write_text(text)
    return str(path)

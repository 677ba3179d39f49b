import pytest

from peershare.cli import main, parse_cluster, prompt_cluster_members, prompt_folder


def _feed(monkeypatch, answers):
    remaining = list(answers)

    def fake_input(*_args):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)
    return remaining


def test_parse_cluster_drops_blanks():
    assert parse_cluster(" 127.0.0.1:1378 ,,192.168.1.1:1379,  ") == [
        "127.0.0.1:1378",
        "192.168.1.1:1379",
    ]


def test_parse_cluster_empty():
    assert parse_cluster("") == []


def test_prompt_folder_retries_until_directory(monkeypatch, tmp_path):
    a_file = tmp_path / "plain.txt"
    a_file.write_text("data")
    folder = tmp_path / "share"
    folder.mkdir()
    remaining = _feed(
        monkeypatch, [str(tmp_path / "missing"), str(a_file), str(folder), "unused"]
    )
    assert prompt_folder() == str(folder)
    assert remaining == ["unused"]


def test_prompt_folder_default(monkeypatch, tmp_path):
    (tmp_path / "shared").mkdir()
    monkeypatch.chdir(tmp_path)
    _feed(monkeypatch, [""])
    assert prompt_folder() == "./shared"


def test_prompt_folder_end_of_input(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    _feed(monkeypatch, [])
    with pytest.raises(EOFError):
        prompt_folder()


def test_prompt_cluster_members_skips_invalid(monkeypatch):
    _feed(monkeypatch, ["127.0.0.1:1378", "bad", "10.0.0.1:1380", ""])
    assert prompt_cluster_members() == ["127.0.0.1:1378", "10.0.0.1:1380"]


def test_prompt_cluster_members_standalone(monkeypatch):
    _feed(monkeypatch, [""])
    assert prompt_cluster_members() == []


def test_main_from_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("P2P_FOLDER", str(tmp_path))
    monkeypatch.setenv("P2P_CLUSTER", "127.0.0.1:9")
    monkeypatch.setenv("P2P_PORT", "0")
    remaining = _feed(monkeypatch, ["4", "unused"])
    assert main([]) == 0
    assert remaining == ["unused"]


def test_main_interactive_end_of_input(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("P2P_FOLDER", raising=False)
    monkeypatch.delenv("P2P_CLUSTER", raising=False)
    _feed(monkeypatch, [])
    assert main([]) == 1


def test_main_interactive(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("P2P_FOLDER", raising=False)
    monkeypatch.delenv("P2P_CLUSTER", raising=False)
    monkeypatch.setenv("P2P_PORT", "0")
    remaining = _feed(monkeypatch, [str(tmp_path), "127.0.0.1:9", "", "4", "unused"])
    assert main([]) == 0
    assert remaining == ["unused"]
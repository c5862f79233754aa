import pandas as pd
import pytest

from errors import CollectError
from file_type_handler import FileTypeHandler


def test_csv_is_read_lazily(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("name,age\nalice,30\nbob,25\n")
    dataset = FileTypeHandler(str(path)).dataset()
    assert dataset.metadata.name == "people"
    assert not dataset.is_materialized

    # edits after the plan is built are seen on first collect
    path.write_text("name,age\ncarol,41\n")
    df = dataset.materialize()
    assert df["name"].tolist() == ["carol"]
    assert dataset.is_materialized


def test_tsv_and_jsonl(tmp_path):
    tsv = tmp_path / "t.tsv"
    tsv.write_text("a\tb\n1\t2\n")
    assert FileTypeHandler(str(tsv)).read().columns.tolist() == ["a", "b"]

    jsonl = tmp_path / "t.jsonl"
    jsonl.write_text('{"a": 1}\n{"a": 2}\n')
    assert FileTypeHandler(str(jsonl)).read()["a"].tolist() == [1, 2]


def test_empty_file_gives_empty_frame(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("")
    df = FileTypeHandler(str(path)).read()
    assert isinstance(df, pd.DataFrame)
    assert df.empty


def test_missing_file_fails_on_collect(tmp_path):
    dataset = FileTypeHandler(str(tmp_path / "gone.csv")).dataset()
    with pytest.raises(CollectError):
        dataset.materialize()
    assert not dataset.is_materialized


def test_unsupported_extension_exits(tmp_path, capsys):
    with pytest.raises(SystemExit):
        FileTypeHandler(str(tmp_path / "data.h5"))
    assert "Unsupported file type" in capsys.readouterr().out

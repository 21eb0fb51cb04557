from vericuda.utils.file_router import discover_bundle_files


def test_discovery_honours_ignore_file_and_skipped_dirs(tmp_path) -> None:
    (tmp_path / "kernels").mkdir()
    (tmp_path / "kernels" / "vectorAdd.json").write_text("{}", encoding="utf-8")
    (tmp_path / "kernels" / "scratch.json").write_text("{}", encoding="utf-8")
    (tmp_path / ".vericuda-trace" / "run").mkdir(parents=True)
    (tmp_path / ".vericuda-trace" / "run" / "summary.json").write_text("{}", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")
    (tmp_path / ".vericudaignore").write_text("scratch.json\n", encoding="utf-8")

    found = discover_bundle_files(tmp_path)

    assert [path.relative_to(tmp_path).as_posix() for path in found] == ["kernels/vectorAdd.json"]


def test_discovery_extra_excludes(tmp_path) -> None:
    (tmp_path / "a.json").write_text("{}", encoding="utf-8")
    (tmp_path / "b.json").write_text("{}", encoding="utf-8")
    found = discover_bundle_files(tmp_path, extra_excludes=["a.json"])
    assert [path.name for path in found] == ["b.json"]

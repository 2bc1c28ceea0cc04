from grpcdocker.services.filesystem import FileSystemService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def __init__(self):
        self.lines = []

    def print(self, message, *_args, **_kwargs):
        self.lines.append(message)


def test_remove_editor_backups_keeps_real_files(tmp_path):
    (tmp_path / "grpc_cxx").mkdir()
    (tmp_path / "grpc_cxx" / "Dockerfile").write_text("FROM grpc/base\n", encoding="utf-8")
    (tmp_path / "grpc_cxx" / "Dockerfile~").write_text("old\n", encoding="utf-8")
    (tmp_path / "#scratch#").write_text("autosave\n", encoding="utf-8")
    (tmp_path / "notes#").write_text("keep\n", encoding="utf-8")
    console = DummyConsole()
    service = FileSystemService(logger=DummyLogger(), console=console)

    removed = service.remove_editor_backups(str(tmp_path))

    assert sorted(removed) == sorted(
        [str(tmp_path / "grpc_cxx" / "Dockerfile~"), str(tmp_path / "#scratch#")]
    )
    assert (tmp_path / "grpc_cxx" / "Dockerfile").exists()
    assert (tmp_path / "notes#").exists()
    assert len(console.lines) == 2
    assert all(line.startswith("removed '") for line in console.lines)

import logging

import pytest
from fat12fs.cli import main, format_listing
from fat12fs.directory import DirectoryEntry
from fat12fs.engine import FileTransferEngine
from fat12fs.layout import DEFAULT_LAYOUT


@pytest.fixture(autouse=True)
def restore_logging():
    """main() reconfigures the root logger; put it back after each test"""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


@pytest.fixture
def image_path(tmp_path):
    img_path = tmp_path / "disk.img"
    assert main([str(img_path), "format"]) == 0
    return str(img_path)


@pytest.fixture
def host_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"floppy contents\n")
    return path


class TestCommands:
    def test_format_creates_image(self, image_path):
        with open(image_path, 'rb') as f:
            raw = f.read()
        assert len(raw) == DEFAULT_LAYOUT.total_size

    def test_format_type_option(self, tmp_path):
        img_path = tmp_path / "dd.img"
        assert main(["--format-type", "720KB", str(img_path), "format"]) == 0
        assert img_path.stat().st_size == 737280

    def test_save_and_list(self, image_path, host_file, capsys):
        assert main([image_path, "save", str(host_file)]) == 0
        capsys.readouterr()

        assert main([image_path, "list"]) == 0
        out = capsys.readouterr().out
        assert "NOTES" in out
        assert "TXT" in out
        assert str(len(b"floppy contents\n")) in out
        assert "1 file(s)" in out

    def test_load_writes_raw_bytes(self, image_path, host_file, capsysbinary):
        main([image_path, "save", str(host_file)])
        capsysbinary.readouterr()

        assert main([image_path, "load", "notes.txt"]) == 0
        assert capsysbinary.readouterr().out == b"floppy contents\n"

    def test_save_replaces_existing_file(self, image_path, host_file):
        main([image_path, "save", str(host_file)])
        host_file.write_bytes(b"second version")
        assert main([image_path, "save", str(host_file)]) == 0

        engine = FileTransferEngine(image_path)
        assert [e.display_name for e in engine.list_directory()] == ["NOTES.TXT"]
        assert engine.load("NOTES.TXT") == b"second version"

    def test_save_over_existing_file_warns(self, image_path, host_file, capsys):
        main([image_path, "save", str(host_file)])
        capsys.readouterr()

        assert main([image_path, "save", str(host_file)]) == 0
        err = capsys.readouterr().err
        assert "WARNING" in err
        assert "Replacing existing file 'NOTES.TXT'" in err

    def test_failed_replace_loses_old_copy(self, image_path, host_file, capsys):
        main([image_path, "save", str(host_file)])
        host_file.write_bytes(bytes(DEFAULT_LAYOUT.total_size))

        assert main([image_path, "save", str(host_file)]) == 1
        assert "error:" in capsys.readouterr().err
        assert FileTransferEngine(image_path).find("NOTES.TXT") is None

    def test_delete(self, image_path, host_file):
        main([image_path, "save", str(host_file)])
        assert main([image_path, "delete", "notes.txt"]) == 0
        assert FileTransferEngine(image_path).list_directory() == []

    def test_write_raw_cluster(self, image_path, tmp_path):
        raw_file = tmp_path / "raw.bin"
        raw_file.write_bytes(b"\x01\x02\x03")
        assert main([image_path, "write", "5", str(raw_file)]) == 0

        with open(image_path, 'rb') as f:
            f.seek(DEFAULT_LAYOUT.cluster_offset(5))
            assert f.read(3) == b"\x01\x02\x03"


class TestFailures:
    def test_load_missing_file(self, image_path, capsys):
        assert main([image_path, "load", "missing.txt"]) == 1
        assert "error:" in capsys.readouterr().err

    def test_delete_missing_file(self, image_path, capsys):
        assert main([image_path, "delete", "missing.txt"]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_missing_host_file(self, image_path, tmp_path, capsys):
        assert main([image_path, "save", str(tmp_path / "absent.txt")]) == 1
        assert "error:" in capsys.readouterr().err

    def test_missing_image(self, tmp_path, capsys):
        assert main([str(tmp_path / "none.img"), "list"]) == 1

    def test_unknown_command(self, image_path):
        with pytest.raises(SystemExit):
            main([image_path, "defrag"])


class TestListing:
    def test_format_listing(self):
        entry = DirectoryEntry(name=b"README  TXT", size=1234,
                               date=((2020 - 1980) << 9) | (5 << 5) | 7,
                               time=(9 << 11) | (15 << 5) | 10)
        assert format_listing([entry]) == ["README   TXT       1234  2020-06-07 09:15:20"]

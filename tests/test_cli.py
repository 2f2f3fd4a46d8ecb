"""Tests for the bsadump command line."""
import json

from click.testing import CliRunner

from conftest import build_bsa
from bsa_parser.cli import cli


def _run(*args):
    return CliRunner().invoke(cli, [str(a) for a in args])


def test_info(bsa_file):
    result = _run("info", bsa_file)
    assert result.exit_code == 0, result.output
    assert "Version:      104" in result.output
    assert "Files:        5" in result.output
    assert "Folder names: yes" in result.output


def test_ls(bsa_file):
    result = _run("ls", bsa_file)
    assert result.exit_code == 0, result.output
    assert "textures\\armor\\leather.dds (64 bytes)" in result.output
    assert "5 file(s)" in result.output


def test_ls_match(bsa_file):
    result = _run("ls", bsa_file, "--match", "*.nif")
    assert result.exit_code == 0, result.output
    assert "2 file(s)" in result.output
    assert "boom.wav" not in result.output


def test_ls_folders(bsa_file):
    result = _run("ls", bsa_file, "--folders")
    assert result.exit_code == 0, result.output
    assert "sound\\fx" in result.output
    assert "textures\\armor" in result.output


def test_lookup_file(bsa_file):
    result = _run("lookup", bsa_file, "meshes/idle.kf")
    assert result.exit_code == 0, result.output
    assert "File meshes\\idle.kf" in result.output
    assert "Size:   2 bytes" in result.output


def test_lookup_folder(bsa_file):
    result = _run("lookup", bsa_file, "Meshes")
    assert result.exit_code == 0, result.output
    assert "Files:  2" in result.output


def test_lookup_missing(bsa_file):
    result = _run("lookup", bsa_file, "meshes\\nope.nif")
    assert result.exit_code == 0
    assert "not found" in result.output


def test_lookup_unencodable_path(bsa_file):
    result = _run("lookup", bsa_file, "日本")
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Undecodable string" in result.output


def test_lookup_uses_configured_encoding(tmp_path):
    path = tmp_path / "utf8.bsa"
    path.write_bytes(build_bsa({"café": {"x.nif": b"x"}}, encoding="utf-8"))
    result = _run("--encoding", "utf-8", "lookup", path, "Café")
    assert result.exit_code == 0, result.output
    assert "Files:  1" in result.output


def test_extract(bsa_file, tmp_path):
    out = tmp_path / "out"
    result = _run("extract", bsa_file, "-o", out, "--match", "sound*")
    assert result.exit_code == 0, result.output
    assert "Extracted 1 file(s)" in result.output
    assert (out / "sound" / "fx" / "boom.wav").read_bytes() == b"RIFF....WAVE"
    assert not (out / "meshes").exists()


def test_extract_default_dir(bsa_file):
    result = _run("extract", bsa_file)
    assert result.exit_code == 0, result.output
    assert (bsa_file.parent / "Fallout - Test" / "meshes" / "idle.kf").read_bytes() == b"KF"


def test_export_json(bsa_file, tmp_path):
    out = tmp_path / "index.json"
    result = _run("export", bsa_file, "--format", "json", "-o", out)
    assert result.exit_code == 0, result.output
    assert len(json.loads(out.read_text(encoding="utf-8"))["files"]) == 5


def test_export_csv_stdout(bsa_file):
    result = _run("export", bsa_file, "--format", "csv")
    assert result.exit_code == 0, result.output
    assert result.output.startswith("path,folder_hash,file_hash")


def test_bad_archive(tmp_path):
    path = tmp_path / "bad.bsa"
    path.write_bytes(build_bsa({"meshes": {"x.nif": b"x"}}, version=103))
    result = _run("info", path)
    assert result.exit_code == 1
    assert "Unsupported BSA version 103" in result.output


def test_scan(tmp_path, sample_bsa):
    (tmp_path / "good.bsa").write_bytes(sample_bsa)
    (tmp_path / "broken.bsa").write_bytes(sample_bsa[:30])
    result = _run("scan", tmp_path)
    assert result.exit_code == 0, result.output
    assert "good.bsa" in result.output
    assert "1 archive(s) could not be read." in result.output


def test_scan_empty(tmp_path):
    result = _run("scan", tmp_path)
    assert "No archives found" in result.output


def test_config_show_and_save(isolated_config):
    result = _run("config")
    assert result.exit_code == 0, result.output
    assert "encoding:           cp1252" in result.output

    result = _run("config", "--strict", "--encoding", "utf-8")
    assert result.exit_code == 0, result.output
    assert isolated_config.exists()

    result = _run("config")
    assert "strict_terminators: True" in result.output
    assert "encoding:           utf-8" in result.output


def test_config_bad_encoding():
    result = _run("config", "--encoding", "klingon")
    assert result.exit_code == 2


def test_malformed_config(isolated_config, bsa_file):
    isolated_config.parent.mkdir(parents=True)
    isolated_config.write_text("[decode\nencoding = \n", encoding="utf-8")
    result = _run("info", bsa_file)
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Malformed config file" in result.output

#!/usr/bin/env python3

import plistlib

import pytest

from tartly.errors import UnitFormatError, UnitIOError
from tartly.units import (
    VM_NAME_KEY,
    UnitDefinition,
    build_unit,
    generate,
    read_unit,
    write_unit,
)


class TestBuildUnit:
    def test_plist_layout(self, settings):
        data = build_unit("macos-sonoma-xcode:16.1", settings).to_plist()

        assert data["Label"] == "co.bitwild.tartly.tart.macos-sonoma-xcode-16.1"
        assert data["ProgramArguments"] == [
            "/opt/homebrew/bin/tart",
            "run",
            "--no-graphics",
            f"--dir=cache:{settings.cache_dir}",
            "macos-sonoma-xcode:16.1",
        ]
        assert data["RunAtLoad"] is True
        assert data["KeepAlive"] == {"SuccessfulExit": False}
        assert data["StandardOutPath"] == str(
            settings.logs_dir / "tartly-macos-sonoma-xcode-16.1.log"
        )
        assert data["StandardErrorPath"] == str(
            settings.logs_dir / "tartly-macos-sonoma-xcode-16.1.err.log"
        )
        assert data[VM_NAME_KEY] == "macos-sonoma-xcode:16.1"

    def test_original_name_kept_verbatim(self, settings):
        unit = build_unit("Demo:1.0", settings)
        assert unit.vm_name == "Demo:1.0"
        assert unit.program_arguments[-1] == "Demo:1.0"

    def test_run_at_load_follows_settings(self, settings):
        s = settings.model_copy(update={"run_at_load": False})
        assert build_unit("demo", s).to_plist()["RunAtLoad"] is False


class TestFromPlist:
    def test_round_trip_through_dict(self, settings):
        unit = build_unit("demo", settings)
        assert UnitDefinition.from_plist(unit.to_plist()) == unit

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {},
            {"Label": 42, VM_NAME_KEY: "demo"},
            {"Label": "co.bitwild.tartly.tart.demo"},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(UnitFormatError):
            UnitDefinition.from_plist(data)


class TestWriteRead:
    def test_write_is_valid_plist(self, settings, tmp_path):
        path = tmp_path / "unit.plist"
        generate("demo", path, settings)

        with open(path, "rb") as f:
            data = plistlib.load(f)
        assert data[VM_NAME_KEY] == "demo"
        assert read_unit(path) == build_unit("demo", settings)

    def test_no_temp_files_left(self, settings, tmp_path):
        generate("demo", tmp_path / "unit.plist", settings)
        generate("demo", tmp_path / "unit.plist", settings)

        assert [p.name for p in tmp_path.iterdir()] == ["unit.plist"]

    def test_missing_directory(self, settings, tmp_path):
        with pytest.raises(UnitIOError):
            write_unit(build_unit("demo", settings), tmp_path / "missing" / "unit.plist")

    def test_failed_replace_keeps_old_file(self, settings, tmp_path, monkeypatch):
        path = tmp_path / "unit.plist"
        generate("old", path, settings)

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("tartly.units.os.replace", broken_replace)
        with pytest.raises(UnitIOError, match="disk full"):
            write_unit(build_unit("new", settings), path)

        assert read_unit(path).vm_name == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["unit.plist"]

    def test_read_missing(self, tmp_path):
        with pytest.raises(UnitIOError) as exc:
            read_unit(tmp_path / "nope.plist")
        assert not isinstance(exc.value, UnitFormatError)

    def test_read_garbage(self, tmp_path):
        path = tmp_path / "bad.plist"
        path.write_text("this is not a plist")

        with pytest.raises(UnitFormatError):
            read_unit(path)

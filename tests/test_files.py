"""Tests for virshle.files module."""

from __future__ import annotations

import copy
import io
import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest

from virshle.codec import decode
from virshle.constants import WORK_DIR
from virshle.exceptions import DecodeError, FormatDetectionError, PathResolutionError, VirshleError
from virshle.files import EphemeralFile, any_to_toml, any_to_xml, load_document, temp_path
from virshle.models import SerializationFormat
from virshle.utils import Logger


@pytest.fixture
def toml_file(tmp_path):
    path = tmp_path / "vm.toml"
    path.write_text('name = "vm1"\nmemory = 2048\n')
    return path


class TestTempPath:
    def test_layout(self, work_dir):
        path = temp_path(SerializationFormat.XML, work_dir)
        assert path.parent == work_dir
        assert path.suffix == ".xml"

    def test_default_work_dir(self):
        assert temp_path(SerializationFormat.TOML).parent == WORK_DIR

    def test_unique(self):
        paths = {temp_path(SerializationFormat.JSON) for _ in range(50)}
        assert len(paths) == 50


class TestLoadDocument:
    def test_pipeline(self):
        fmt, data = load_document('name = "vm1"\ndescription = ""\n[disk]\n')
        assert fmt is SerializationFormat.TOML
        assert data == {"name": "vm1"}

    def test_uses_path_extension(self):
        fmt, data = load_document("name: vm1\n", path="vm.yml")
        assert fmt is SerializationFormat.YAML
        assert data == {"name": "vm1"}

    def test_sniffed_document_is_not_decoded_twice(self):
        with patch("virshle.files.decode") as mock_decode:
            fmt, data = load_document('{"name": "vm1", "vcpu": 2}')
        mock_decode.assert_not_called()
        assert fmt is SerializationFormat.JSON
        assert data == {"name": "vm1", "vcpu": 2}


class TestEphemeralFileRead:
    def test_requires_path_or_raw(self):
        with pytest.raises(VirshleError, match="needs a path or raw content"):
            EphemeralFile()

    def test_read_from_path(self, toml_file):
        file = EphemeralFile(path=toml_file)
        assert not file.is_read
        assert file.read() is file
        assert file.is_read
        assert file.format is SerializationFormat.TOML
        assert file.raw == 'name = "vm1"\nmemory = 2048\n'
        assert file.data == {"name": "vm1", "memory": 2048}

    def test_read_from_raw_sniffs(self):
        file = EphemeralFile(raw='{"name": "vm1"}').read()
        assert file.format is SerializationFormat.JSON
        assert file.data == {"name": "vm1"}

    def test_explicit_format(self):
        file = EphemeralFile(raw="name: vm1\n", format=SerializationFormat.YAML).read()
        assert file.data == {"name": "vm1"}

    def test_read_failure_exposes_nothing(self, tmp_path):
        path = tmp_path / "vm.toml"
        path.write_text("name = \n")
        file = EphemeralFile(path=path)
        with pytest.raises(DecodeError):
            file.read()
        assert file.raw is None
        assert file.data is None
        assert file.format is SerializationFormat.UNKNOWN
        assert not file.is_read

    def test_invalid_utf8_is_a_decode_error(self, tmp_path):
        path = tmp_path / "vm.toml"
        path.write_bytes(b'name = "\xff\xfe"\n')
        file = EphemeralFile(path=path)
        with pytest.raises(DecodeError, match="not valid UTF-8") as exc:
            file.read()
        assert exc.value.format == "toml"
        assert not file.is_read

    def test_utf8_content_round_trips(self, tmp_path, work_dir):
        path = tmp_path / "vm.toml"
        path.write_text('description = "caf\u00e9 \u2603"\n', encoding="utf-8")
        with EphemeralFile(path=path).read().convert(SerializationFormat.XML, work_dir=work_dir) as out:
            assert "caf\u00e9 \u2603" in out.path.read_text(encoding="utf-8")

    def test_unknown_extension(self, tmp_path):
        path = tmp_path / "vm.conf"
        path.write_text('name = "vm1"\n')
        with pytest.raises(FormatDetectionError):
            EphemeralFile(path=path).read()

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            EphemeralFile(path=tmp_path / "nope.toml").read()

    def test_home_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", "/home/alice")
        path = tmp_path / "vm.toml"
        path.write_text('[disk]\nfile = "~/.libvirt/volumes/standard/10G.img"\n')
        file = EphemeralFile(path=path).read()
        assert file.data == {"disk": {"file": "/home/alice/.libvirt/volumes/standard/10G.img"}}

    def test_relative_path_failure(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(PathResolutionError, match="./missing.img"):
            EphemeralFile(raw='file = "./missing.img"\n').read()


class TestEphemeralFileConvert:
    def test_requires_read(self, toml_file):
        with pytest.raises(VirshleError, match="read"):
            EphemeralFile(path=toml_file).convert(SerializationFormat.XML)

    def test_writes_new_file(self, toml_file, work_dir):
        source = EphemeralFile(path=toml_file).read()
        out = source.convert(SerializationFormat.XML, work_dir=work_dir)
        assert out is not source
        assert out.path.parent == work_dir
        assert out.path.suffix == ".xml"
        assert out.format is SerializationFormat.XML
        assert out.is_read
        assert out.path.read_text() == out.raw
        assert decode(out.raw, "xml") == {"name": "vm1", "memory": 2048}

    def test_default_work_dir_is_relative_to_cwd(self, toml_file, in_tmp):
        out = EphemeralFile(path=toml_file).read().convert(SerializationFormat.JSON)
        assert out.path.parent == Path(".virshle/tmp")
        assert (in_tmp / out.path).is_file()

    def test_source_untouched(self, toml_file, work_dir):
        source = EphemeralFile(path=toml_file).read()
        before = (source.path, source.raw, source.format, copy.deepcopy(source.data))
        source.convert(SerializationFormat.YAML, work_dir=work_dir)
        assert (source.path, source.raw, source.format, source.data) == before
        assert toml_file.read_text() == 'name = "vm1"\nmemory = 2048\n'

    def test_siblings_get_distinct_paths(self, toml_file, work_dir):
        source = EphemeralFile(path=toml_file).read()
        first = source.convert(SerializationFormat.TOML, work_dir=work_dir)
        second = source.convert(SerializationFormat.TOML, work_dir=work_dir)
        assert first.path != second.path
        assert tomllib.loads(first.path.read_text()) == tomllib.loads(second.path.read_text())

    def test_converted_file_can_be_read_back(self, toml_file, work_dir):
        out = EphemeralFile(path=toml_file).read().convert(SerializationFormat.YAML, work_dir=work_dir)
        again = EphemeralFile(path=out.path).read()
        assert again.format is SerializationFormat.YAML
        assert again.data == {"name": "vm1", "memory": 2048}

    def test_encode_failure_writes_nothing(self, work_dir):
        source = EphemeralFile(raw="- a\n- b\n").read()
        with pytest.raises(VirshleError):
            source.convert(SerializationFormat.TOML, work_dir=work_dir)
        assert not work_dir.exists()

    def test_diagnostics_do_not_change_output(self, toml_file, work_dir):
        stream = io.StringIO()
        source = EphemeralFile(path=toml_file).read()
        loud = source.convert(SerializationFormat.XML, work_dir=work_dir, logger=Logger(2, stream=stream))
        quiet = source.convert(SerializationFormat.XML, work_dir=work_dir)
        assert loud.raw == quiet.raw
        output = stream.getvalue()
        assert "input:toml" in output
        assert "output:xml" in output
        assert 'name = "vm1"' in output
        assert "<name>vm1</name>" in output

    def test_diagnostics_silent_at_verbosity_zero(self, toml_file, work_dir):
        stream = io.StringIO()
        EphemeralFile(path=toml_file).read().convert(
            SerializationFormat.XML, work_dir=work_dir, logger=Logger(0, stream=stream)
        )
        assert stream.getvalue() == ""

    def test_info_level_hides_output_block(self, toml_file, work_dir):
        stream = io.StringIO()
        EphemeralFile(path=toml_file).read().convert(
            SerializationFormat.XML, work_dir=work_dir, logger=Logger(1, stream=stream)
        )
        assert "input:toml" in stream.getvalue()
        assert "output:xml" not in stream.getvalue()


class TestEphemeralFileLifetime:
    def test_context_manager_removes_temp_file(self, toml_file, work_dir):
        source = EphemeralFile(path=toml_file).read()
        with source.convert(SerializationFormat.XML, work_dir=work_dir) as out:
            assert out.path.exists()
        assert not out.path.exists()
        assert work_dir.is_dir()

    def test_removed_on_error(self, toml_file, work_dir):
        source = EphemeralFile(path=toml_file).read()
        with pytest.raises(RuntimeError):
            with source.convert(SerializationFormat.XML, work_dir=work_dir) as out:
                raise RuntimeError("subprocess failed")
        assert not out.path.exists()

    def test_user_files_are_never_removed(self, toml_file):
        with EphemeralFile(path=toml_file).read():
            pass
        assert toml_file.exists()

    def test_remove_twice(self, toml_file, work_dir):
        out = EphemeralFile(path=toml_file).read().convert(SerializationFormat.XML, work_dir=work_dir)
        out.remove()
        out.remove()
        assert not out.path.exists()


class TestConversions:
    def test_any_to_xml_drops_empty_table(self, tmp_path, work_dir):
        path = tmp_path / "vm.toml"
        path.write_text('name = "vm1"\n[disk]\n')
        with any_to_xml(path, work_dir) as out:
            assert "disk" not in out.raw
            assert "<name>vm1</name>" in out.raw
            assert out.data == {"name": "vm1"}

    def test_any_to_xml_from_yaml(self, tmp_path, work_dir):
        path = tmp_path / "net.yaml"
        path.write_text("network:\n  name: default\n  bridge:\n    '@name': virbr0\n")
        with any_to_xml(path, work_dir) as out:
            assert out.raw.startswith("<network>")
            assert '<bridge name="virbr0"/>' in out.raw

    def test_any_to_toml_from_virsh_xml(self, domain_xml, domain_data, work_dir):
        with any_to_toml(domain_xml, work_dir) as out:
            assert out.format is SerializationFormat.TOML
            assert out.path.suffix == ".toml"
            assert tomllib.loads(out.raw) == domain_data

    def test_feature_flags_survive_edit_round_trip(self, work_dir):
        xml = (
            "<domain><name>vm1</name><features><acpi/><apic/></features>"
            "<devices><disk><readonly/></disk></devices></domain>"
        )
        with any_to_toml(xml, work_dir) as toml:
            with any_to_xml(toml.path, work_dir) as out:
                assert "<acpi/>" in out.raw
                assert "<apic/>" in out.raw
                assert "<readonly/>" in out.raw
                assert decode(out.raw, "xml") == decode(xml, "xml")

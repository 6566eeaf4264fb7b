import hashlib

import pytest

from conftest import BASE_URL, CT, sha256
from dicomtestfiles.errors import NotFoundError
from dicomtestfiles.registry import Registry, generate_manifest, write_manifest
from dicomtestfiles.utils import load_yaml, save_yaml


def test_resolve_builds_url_and_checksum(checksums):
    registry = Registry(checksums, base_url="https://example.org/data")

    source = registry.resolve("CT/1.dcm")

    assert source.url == "https://example.org/data/CT/1.dcm"
    assert source.checksum == sha256(CT)
    assert source.algorithm == "sha256"
    assert source.digest == hashlib.sha256(CT).hexdigest()


def test_resolve_unknown_raises_not_found(checksums):
    registry = Registry(checksums, base_url=BASE_URL)

    with pytest.raises(NotFoundError) as excinfo:
        registry.resolve("CT/2.dcm")

    assert excinfo.value.identifier == "CT/2.dcm"


def test_list_identifiers_is_sorted(checksums):
    registry = Registry(checksums, base_url=BASE_URL)

    assert registry.list_identifiers() == ["CT/1.dcm", "pydicom/liver.dcm"]
    assert "CT/1.dcm" in registry
    assert len(registry) == 2


def test_bare_and_md5_checksums_are_accepted():
    md5 = "md5:" + hashlib.md5(CT).hexdigest()
    registry = Registry({"a.dcm": hashlib.sha256(CT).hexdigest(), "b.dcm": md5})

    assert registry.resolve("a.dcm").algorithm == "sha256"
    assert registry.resolve("b.dcm").algorithm == "md5"


def test_unknown_algorithm_is_rejected():
    with pytest.raises(ValueError):
        Registry({"a.dcm": "crc99:abcd"})


def test_from_yaml_round_trip(tmp_path, checksums):
    manifest = tmp_path / "checksums.yaml"
    save_yaml({"files": checksums}, manifest)

    registry = Registry.from_yaml(manifest, base_url=BASE_URL)

    assert registry.list_identifiers() == sorted(checksums)


def test_from_yaml_rejects_malformed_manifest(tmp_path):
    manifest = tmp_path / "checksums.yaml"
    manifest.write_text("files:\n  - not-a-mapping\n")

    with pytest.raises(ValueError):
        Registry.from_yaml(manifest)


def test_from_yaml_missing_manifest(tmp_path):
    with pytest.raises(FileNotFoundError):
        Registry.from_yaml(tmp_path / "nope.yaml")


def test_bundled_manifest_is_empty_and_explains_itself():
    registry = Registry.from_yaml()

    assert len(registry) == 0
    with pytest.raises(NotFoundError, match="DICOM_TEST_FILES_MANIFEST") as excinfo:
        registry.resolve("pydicom/liver.dcm")
    assert excinfo.value.identifier == "pydicom/liver.dcm"


def test_unknown_identifier_in_populated_manifest_has_no_hint(checksums):
    registry = Registry(checksums, base_url=BASE_URL)

    with pytest.raises(NotFoundError) as excinfo:
        registry.resolve("pydicom/missing.dcm")
    assert "DICOM_TEST_FILES_MANIFEST" not in str(excinfo.value)


def test_generated_manifest_resolves_files(tmp_path):
    data = tmp_path / "data"
    (data / "pydicom").mkdir(parents=True)
    (data / "pydicom" / "liver.dcm").write_bytes(CT)

    manifest = write_manifest(data, tmp_path / "checksums.yaml")
    registry = Registry.from_yaml(manifest, base_url=BASE_URL)

    source = registry.resolve("pydicom/liver.dcm")
    assert source.checksum == sha256(CT)
    assert source.url == BASE_URL + "pydicom/liver.dcm"


def test_generate_manifest_walks_data_folder(tmp_path):
    data = tmp_path / "data"
    (data / "WG04" / "JPLY").mkdir(parents=True)
    (data / "WG04" / "JPLY" / "NM1_JPLY").write_bytes(CT)
    (data / "liver.dcm").write_bytes(b"liver")
    (data / ".gitattributes").write_text("*.dcm binary\n")

    manifest = generate_manifest(data)

    assert manifest == {
        "WG04/JPLY/NM1_JPLY": sha256(CT),
        "liver.dcm": sha256(b"liver"),
    }

    output = write_manifest(data, tmp_path / "out.yaml")
    assert load_yaml(output) == {"files": manifest}

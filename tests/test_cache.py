from concurrent.futures import ProcessPoolExecutor
from pathlib import Path

from conftest import CT, sha256
from dicomtestfiles.cache import CacheStore


def test_lookup_miss_returns_none(tmp_path):
    cache = CacheStore(tmp_path)

    assert cache.lookup("CT/1.dcm") is None


def test_store_mirrors_identifier_layout(tmp_path):
    cache = CacheStore(tmp_path)

    path = cache.store("WG04/JPLY/NM1_JPLY", CT, sha256(CT))

    assert path == tmp_path / "WG04" / "JPLY" / "NM1_JPLY"
    assert path.read_bytes() == CT
    assert cache.lookup("WG04/JPLY/NM1_JPLY") == path


def test_store_is_idempotent(tmp_path):
    cache = CacheStore(tmp_path)

    first = cache.store("CT/1.dcm", CT, sha256(CT))
    mtime = first.stat().st_mtime_ns
    second = cache.store("CT/1.dcm", CT, sha256(CT))

    assert first == second
    assert second.stat().st_mtime_ns == mtime


def test_store_replaces_corrupt_file(tmp_path):
    cache = CacheStore(tmp_path)
    target = cache.path_for("CT/1.dcm")
    target.parent.mkdir(parents=True)
    target.write_bytes(b"corrupt")

    cache.store("CT/1.dcm", CT, sha256(CT))

    assert target.read_bytes() == CT


def test_temporary_files_are_not_listed(tmp_path):
    cache = CacheStore(tmp_path)
    cache.store("CT/1.dcm", CT, sha256(CT))
    (tmp_path / "CT" / ".dtf-2.dcm.abc.part").write_bytes(b"partial")

    assert list(cache.iter_cached()) == ["CT/1.dcm"]
    assert cache.lookup("CT/2.dcm") is None


def test_entry_and_remove(tmp_path):
    cache = CacheStore(tmp_path)
    cache.store("CT/1.dcm", CT, sha256(CT))

    entry = cache.entry("CT/1.dcm", sha256(CT))
    assert entry.path == tmp_path / "CT" / "1.dcm"
    assert entry.checksum == sha256(CT)

    assert cache.remove("CT/1.dcm") is True
    assert cache.remove("CT/1.dcm") is False
    assert cache.entry("CT/1.dcm", sha256(CT)) is None


def _store_in_new_process(root, data):
    path = CacheStore(Path(root)).store("pydicom/liver.dcm", data, sha256(data))
    return str(path)


def test_processes_racing_store_leave_one_intact_file(tmp_path):
    data = CT * 4096

    with ProcessPoolExecutor(max_workers=4) as pool:
        paths = list(pool.map(_store_in_new_process, [str(tmp_path)] * 8, [data] * 8))

    target = tmp_path / "pydicom" / "liver.dcm"
    assert set(paths) == {str(target)}
    assert target.read_bytes() == data
    assert [p.name for p in target.parent.iterdir()] == ["liver.dcm"]


def test_two_stores_on_same_root_share_files(tmp_path):
    first = CacheStore(tmp_path)
    second = CacheStore(tmp_path)

    path = first.store("CT/1.dcm", CT, sha256(CT))

    assert second.lookup("CT/1.dcm") == path
    assert second.store("CT/1.dcm", CT, sha256(CT)) == path
    assert list(second.iter_cached()) == ["CT/1.dcm"]

"""
Batch driver tests: directory crawl, file list, CSV manifest, fan-out bounds.
"""

import logging
import os
import re
import threading
import time

import pytest

from config import IndexerConfig
from exceptions import BatchIndexError, IndexingError, ManifestError
from services.batch import BatchIndexer
from services.indexer import WhosOnFirstIndexer
from tests.factories.feature_factories import make_feature_body, make_root_body

COLLECTION = "whosonfirst-data"


def _write_list(tmp_path, lines, name="files.txt"):
    path = tmp_path / name
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)


class TestIndexDirectory:

    def test_indexes_numbered_files_only(self, make_indexer, write_feature, tmp_path, fake_pool):
        data = tmp_path / "data"
        a = make_feature_body()
        b = make_feature_body()
        write_feature(a, directory=data / "101" / "736")
        write_feature(b, directory=data / "856")
        write_feature(make_feature_body(), name="123-alt-quattroshapes.geojson", directory=data)
        (data / "README.md").write_text("not a feature", encoding="utf-8")

        result = BatchIndexer(make_indexer()).index_directory(str(data), COLLECTION)

        assert (result.total, result.indexed, result.failed) == (2, 2, 0)
        written = {params[0] for _, params in fake_pool.writes()}
        assert written == {a["properties"]["wof:id"], b["properties"]["wof:id"]}

    def test_root_feature_counted_as_skipped(self, make_indexer, write_feature, tmp_path):
        write_feature(make_root_body(), directory=tmp_path / "data")
        result = BatchIndexer(make_indexer()).index_directory(str(tmp_path / "data"), COLLECTION)
        assert (result.total, result.indexed, result.skipped) == (1, 0, 1)

    def test_first_failure_aborts(self, make_indexer, write_feature, tmp_path, fake_pool):
        data = tmp_path / "data"
        good = make_feature_body(wof_id=1)
        bad = make_feature_body(wof_id=2, properties={"wof:repo": None})
        never = make_feature_body(wof_id=3)
        write_feature(good, directory=data)
        bad_path = write_feature(bad, directory=data)
        write_feature(never, directory=data)

        expected = re.escape(f"failed to index {bad_path}, because can't find wof:repo")
        with pytest.raises(IndexingError, match=expected) as exc_info:
            BatchIndexer(make_indexer()).index_directory(str(data), COLLECTION)

        assert exc_info.value.__cause__ is not None
        assert [params[0] for _, params in fake_pool.writes()] == [1]

    def test_missing_root(self, make_indexer, tmp_path):
        with pytest.raises(FileNotFoundError):
            BatchIndexer(make_indexer()).index_directory(str(tmp_path / "nope"), COLLECTION)

    def test_nfs_kludge_walk(self, make_indexer, write_feature, tmp_path):
        write_feature(make_feature_body(), directory=tmp_path / "data" / "a" / "b")
        result = BatchIndexer(make_indexer()).index_directory(
            str(tmp_path / "data"), COLLECTION, nfs_kludge=True
        )
        assert result.indexed == 1


class TestIndexFileList:

    def test_all_listed_files_indexed(self, make_indexer, write_feature, tmp_path, fake_pool):
        paths = [write_feature(make_feature_body()) for _ in range(5)]
        list_path = _write_list(tmp_path, paths[:3] + [""] + paths[3:])

        result = BatchIndexer(make_indexer(), max_workers=3).index_file_list(list_path, COLLECTION)

        assert (result.total, result.indexed) == (5, 5)
        assert len(fake_pool.writes()) == 5

    def test_failures_collected_not_raised(self, make_indexer, write_feature, tmp_path):
        good = write_feature(make_feature_body())
        bad = write_feature(make_feature_body(properties={"wof:placetype": "city"}))
        missing = str(tmp_path / "missing.geojson")
        list_path = _write_list(tmp_path, [good, bad, missing])

        result = BatchIndexer(make_indexer(), max_workers=2).index_file_list(list_path, COLLECTION)

        assert (result.total, result.indexed, result.failed) == (3, 1, 2)
        failed = {f.path: f.error_type for f in result.failures}
        assert failed == {bad: "UnknownPlacetypeError", missing: "FeatureParseError"}

        with pytest.raises(BatchIndexError) as exc_info:
            result.raise_for_failures()
        assert exc_info.value.result.failed == 2

    def test_missing_list(self, make_indexer, tmp_path):
        with pytest.raises(ManifestError):
            BatchIndexer(make_indexer()).index_file_list(str(tmp_path / "nope.txt"), COLLECTION)

    def test_byte_order_mark_ignored(self, make_indexer, write_feature, tmp_path):
        path = write_feature(make_feature_body())
        list_path = tmp_path / "files.txt"
        list_path.write_text(path + "\n", encoding="utf-8-sig")

        result = BatchIndexer(make_indexer()).index_file_list(str(list_path), COLLECTION)
        assert (result.total, result.indexed, result.failed) == (1, 1, 0)

    def test_run_id_shared_by_run_records(self, make_indexer, write_feature, tmp_path, caplog):
        bad = write_feature(make_feature_body(properties={"wof:repo": None}))
        list_path = _write_list(tmp_path, [bad])

        with caplog.at_level(logging.INFO, logger="driver.BatchIndexer"):
            BatchIndexer(make_indexer()).index_file_list(list_path, COLLECTION)
            BatchIndexer(make_indexer()).index_file_list(list_path, COLLECTION)

        run_ids = [
            r.custom_dimensions.get("run_id") for r in caplog.records
            if r.name == "driver.BatchIndexer" and "run_id" in r.custom_dimensions
        ]
        # failure + completion record per run
        assert len(run_ids) == 4
        assert run_ids[0] == run_ids[1]
        assert run_ids[2] == run_ids[3]
        assert run_ids[0] != run_ids[2]


class TestIndexMetaFile:

    def test_paths_relative_to_data_root(self, make_indexer, write_feature, tmp_path):
        data_root = tmp_path / "data"
        body = make_feature_body()
        write_feature(body, directory=data_root / "101" / "736")
        rel = os.path.join("101", "736", f"{body['properties']['wof:id']}.geojson")

        csv_path = tmp_path / "wof-locality-latest.csv"
        csv_path.write_text(f"id,path,name\n{body['properties']['wof:id']},{rel},x\n", encoding="utf-8")

        result = BatchIndexer(make_indexer()).index_meta_file(str(csv_path), COLLECTION, str(data_root))
        assert (result.total, result.indexed) == (1, 1)

    def test_missing_path_column(self, make_indexer, tmp_path):
        csv_path = tmp_path / "meta.csv"
        csv_path.write_text("id,name\n1,x\n", encoding="utf-8")
        with pytest.raises(ManifestError, match="missing 'path' column"):
            BatchIndexer(make_indexer()).index_meta_file(str(csv_path), COLLECTION, str(tmp_path))

    def test_byte_order_mark_before_header(self, make_indexer, write_feature, tmp_path):
        data_root = tmp_path / "data"
        body = make_feature_body()
        write_feature(body, directory=data_root)

        csv_path = tmp_path / "meta.csv"
        csv_path.write_text(f"path,id\n{body['properties']['wof:id']}.geojson,1\n", encoding="utf-8-sig")

        result = BatchIndexer(make_indexer()).index_meta_file(str(csv_path), COLLECTION, str(data_root))
        assert (result.total, result.indexed) == (1, 1)

    def test_empty_manifest(self, make_indexer, tmp_path):
        csv_path = tmp_path / "meta.csv"
        csv_path.write_text("", encoding="utf-8")
        with pytest.raises(ManifestError):
            BatchIndexer(make_indexer()).index_meta_file(str(csv_path), COLLECTION, str(tmp_path))

    def test_empty_path_raises_after_in_flight_tasks(self, make_indexer, write_feature, tmp_path, fake_pool):
        body = make_feature_body()
        write_feature(body, directory=tmp_path / "data")
        csv_path = tmp_path / "meta.csv"
        csv_path.write_text(
            f"id,path\n{body['properties']['wof:id']},{body['properties']['wof:id']}.geojson\n2,\n",
            encoding="utf-8",
        )

        with pytest.raises(ManifestError, match="empty 'path'"):
            BatchIndexer(make_indexer()).index_meta_file(str(csv_path), COLLECTION, str(tmp_path / "data"))

        assert len(fake_pool.writes()) == 1


class _SlowIndexer:
    """Records how many index_file calls overlap."""

    def __init__(self, delay=0.02):
        self.config = IndexerConfig(max_workers=4)
        self.delay = delay
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.calls = []

    def index_file(self, path, collection):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append(path)
        time.sleep(self.delay)
        with self._lock:
            self.active -= 1
        return object()


class TestFanOut:

    def test_in_flight_tasks_bounded_by_workers(self):
        indexer = _SlowIndexer()
        result = BatchIndexer(indexer, max_workers=3).index_paths(
            (f"/data/{i}.geojson" for i in range(30)), COLLECTION
        )

        assert result.indexed == 30
        assert 1 <= indexer.max_active <= 3
        assert sorted(indexer.calls) == sorted(f"/data/{i}.geojson" for i in range(30))

    def test_workers_default_to_config(self):
        assert BatchIndexer(_SlowIndexer()).max_workers == 4

    def test_one_session_per_in_flight_task(self, db_config, fake_pool, write_feature):
        from infrastructure.connection_pool import SessionPool

        pool = SessionPool(db_config, pool=fake_pool)
        indexer = WhosOnFirstIndexer(IndexerConfig(), pool=pool)
        paths = [write_feature(make_feature_body()) for _ in range(12)]

        result = BatchIndexer(indexer, max_workers=6).index_paths(paths, COLLECTION)

        assert result.indexed == 12
        assert fake_pool.max_checked_out <= db_config.max_connections
        assert pool.available == pool.size
        pool.close()

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            BatchIndexer(_SlowIndexer(), max_workers=-1)

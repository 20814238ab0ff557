"""
WhosOnFirstIndexer tests: one feature in, at most one upsert out.
"""

import json
import logging
import re

import pytest

from config import IndexerConfig
from core.models.feature import WOFFeature
from exceptions import (
    CentroidNotFoundError,
    ConfigurationError,
    DatabaseError,
    FeatureParseError,
    MissingPropertyError,
    UnknownPlacetypeError,
    UnsupportedGeometryModeError,
    ValidationError,
)
from services.indexer import WhosOnFirstIndexer
from tests.factories.feature_factories import make_feature_body, make_root_body

COLLECTION = "whosonfirst-data"


class TestIndexFeature:

    def test_row_columns(self, make_indexer, fake_pool):
        body = make_feature_body(properties={
            "wof:parent_id": 85633041,
            "edtf:deprecated": "2020-01-01",
            "wof:superseded_by": [1],
        })
        row = make_indexer().index_feature(WOFFeature(body), COLLECTION)

        assert row.id == body["properties"]["wof:id"]
        assert row.parent_id == 85633041
        assert row.placetype_id == 102312317
        assert row.is_deprecated == 1
        assert row.is_superseded == 1
        assert json.loads(row.geom) == body["geometry"]

        writes = fake_pool.writes()
        assert len(writes) == 1
        assert writes[0][1][0] == row.id

    def test_flags_zero_when_current(self, make_indexer):
        row = make_indexer().index_feature(WOFFeature(make_feature_body()), COLLECTION)
        assert (row.is_deprecated, row.is_superseded) == (0, 0)

    def test_session_returned_after_write(self, make_indexer, session_pool):
        make_indexer().index_feature(WOFFeature(make_feature_body()), COLLECTION)
        assert session_pool.available == session_pool.size

    def test_reindex_issues_same_statement(self, make_indexer, fake_pool):
        feature = WOFFeature(make_feature_body())
        indexer = make_indexer()
        indexer.index_feature(feature, COLLECTION)
        indexer.index_feature(feature, COLLECTION)

        first, second = fake_pool.writes()
        assert first[1] == second[1]

    def test_centroid_mode(self, make_indexer):
        body = make_feature_body(properties={"lbl:latitude": 10.0, "lbl:longitude": 20.0})
        row = make_indexer(geometry_mode="centroid").index_feature(WOFFeature(body), COLLECTION)
        assert json.loads(row.geom) == {"type": "Point", "coordinates": [20.0, 10.0]}


class TestRootFeature:

    def test_earth_is_skipped(self, make_indexer, fake_pool, caplog):
        with caplog.at_level(logging.INFO):
            result = make_indexer().index_feature(WOFFeature(make_root_body()), COLLECTION)

        assert result is None
        assert fake_pool.writes() == []
        assert "skipping Earth because it confused PostGIS" in caplog.text


class TestRecoverableDefaults:

    def test_missing_parent_defaults_to_minus_one(self, make_indexer, caplog):
        body = make_feature_body(properties={"wof:parent_id": None})
        repo = body["properties"]["wof:repo"]

        with caplog.at_level(logging.WARNING):
            row = make_indexer().index_feature(WOFFeature(body), COLLECTION)

        assert row.parent_id == -1
        assert f"FAILED to determine parent ID for {row.id}#{repo}" in caplog.text

    def test_missing_country_defaults_to_xx(self, make_indexer):
        body = make_feature_body(properties={"wof:country": None})
        row = make_indexer().index_feature(WOFFeature(body), COLLECTION)
        assert json.loads(row.meta)["wof:country"] == "XX"


class TestNoWriteOnError:

    @pytest.mark.parametrize("properties,error,message", [
        ({"wof:repo": None}, MissingPropertyError, "can't find wof:repo for {wof_id}"),
        ({"wof:repo": ""}, MissingPropertyError, "missing wof:repo for {wof_id}"),
        ({"wof:placetype": "city"}, UnknownPlacetypeError, "invalid placetype"),
    ])
    def test_input_errors(self, make_indexer, fake_pool, properties, error, message):
        body = make_feature_body(properties=properties)
        expected = re.escape(message.format(wof_id=body["properties"]["wof:id"]))
        with pytest.raises(error, match=rf"{expected}\b"):
            make_indexer().index_feature(WOFFeature(body), COLLECTION)
        assert fake_pool.writes() == []

    def test_missing_centroid(self, make_indexer, fake_pool):
        body = make_feature_body(properties={
            "lbl:latitude": None, "lbl:longitude": None,
            "geom:latitude": None, "geom:longitude": None,
        })
        with pytest.raises(CentroidNotFoundError):
            make_indexer(geometry_mode="centroid").index_feature(WOFFeature(body), COLLECTION)
        assert fake_pool.writes() == []

    def test_unknown_geometry_mode(self, make_indexer, fake_pool):
        with pytest.raises(UnsupportedGeometryModeError):
            make_indexer(geometry_mode="hull").index_feature(WOFFeature(make_feature_body()), COLLECTION)
        assert fake_pool.writes() == []

    @pytest.mark.parametrize("collection", ["", "   "])
    def test_empty_collection_rejected(self, make_indexer, fake_pool, collection):
        with pytest.raises(ValidationError, match="collection"):
            make_indexer().index_feature(WOFFeature(make_feature_body()), collection)
        assert fake_pool.writes() == []

    def test_unreadable_file(self, make_indexer, tmp_path):
        with pytest.raises(FeatureParseError):
            make_indexer().index_file(str(tmp_path / "missing.geojson"), COLLECTION)

    def test_statement_failure_releases_session(self, make_indexer, session_pool, fake_pool):
        import psycopg
        for conn in fake_pool.connections:
            conn.execute_error = psycopg.OperationalError("server closed the connection")
        rollbacks_before = fake_pool.connections[0].rollbacks

        with pytest.raises(DatabaseError):
            make_indexer().index_feature(WOFFeature(make_feature_body()), COLLECTION)

        assert session_pool.available == session_pool.size
        assert fake_pool.connections[0].rollbacks == rollbacks_before + 1


class TestDryRunAndVerbose:

    def test_debug_config_builds_without_writing(self, make_indexer, fake_pool):
        row = make_indexer(debug=True).index_feature(WOFFeature(make_feature_body()), COLLECTION)
        assert row is not None
        assert fake_pool.writes() == []

    def test_dry_run_per_call(self, make_indexer, fake_pool):
        indexer = make_indexer()
        indexer.index_feature(WOFFeature(make_feature_body()), COLLECTION, dry_run=True)
        assert fake_pool.writes() == []

        indexer.index_feature(WOFFeature(make_feature_body()), COLLECTION)
        assert len(fake_pool.writes()) == 1

    def test_dry_run_needs_no_pool(self):
        indexer = WhosOnFirstIndexer(IndexerConfig(debug=True), pool=None)
        assert indexer.index_feature(WOFFeature(make_feature_body()), COLLECTION) is not None

    def test_write_without_pool_rejected(self):
        indexer = WhosOnFirstIndexer(IndexerConfig(), pool=None)
        with pytest.raises(ConfigurationError):
            indexer.index_feature(WOFFeature(make_feature_body()), COLLECTION)

    def test_verbose_abbreviates_default_geometry(self, make_indexer, caplog):
        with caplog.at_level(logging.INFO):
            row = make_indexer(verbose=True, debug=True).index_feature(
                WOFFeature(make_feature_body()), COLLECTION
            )
        assert "INSERT INTO whosonfirst" in caplog.text
        assert "ST_GeomFromGeoJSON('...')" in caplog.text
        assert row.geom not in caplog.text

    def test_verbose_shows_derived_geometry(self, make_indexer, caplog):
        with caplog.at_level(logging.INFO):
            row = make_indexer(verbose=True, debug=True, geometry_mode="bbox").index_feature(
                WOFFeature(make_feature_body()), COLLECTION
            )
        assert row.geom in caplog.text


def test_index_file_reads_from_disk(make_indexer, write_feature, fake_pool):
    body = make_feature_body()
    row = make_indexer().index_file(write_feature(body), COLLECTION)
    assert row.id == body["properties"]["wof:id"]
    assert len(fake_pool.writes()) == 1

"""
Metadata summary tests: keys, country default, hierarchy validation.
"""

import json
import logging

import pytest

from core.models.feature import WOFFeature
from core.models.record import MetadataSummary
from exceptions import MetadataEncodingError
from services.metadata import derive_metadata, encode_metadata
from tests.factories.feature_factories import make_feature_body


class TestDeriveMetadata:

    def test_summary_uses_wof_keys(self):
        body = make_feature_body(properties={
            "wof:name": "Montréal",
            "wof:country": "CA",
            "wof:hierarchy": [{"country_id": 85633041, "locality_id": 101736545}],
        })
        meta = json.loads(encode_metadata(derive_metadata(WOFFeature(body))))

        assert meta == {
            "wof:name": "Montréal",
            "wof:country": "CA",
            "wof:hierarchy": [{"country_id": 85633041, "locality_id": 101736545}],
        }

    def test_missing_country_defaults_to_xx(self, caplog):
        feature = WOFFeature(make_feature_body(properties={"wof:country": None}))

        with caplog.at_level(logging.WARNING):
            summary = derive_metadata(feature)

        assert summary.country == "XX"
        assert f"FAILED to determine country for {feature.id}#meta" in caplog.text

    def test_empty_hierarchy_kept(self):
        feature = WOFFeature(make_feature_body(properties={"wof:hierarchy": []}))
        meta = json.loads(encode_metadata(derive_metadata(feature)))
        assert meta["wof:hierarchy"] == []

    def test_invalid_hierarchy_rejected(self):
        feature = WOFFeature(make_feature_body(properties={
            "wof:hierarchy": [{"country_id": "not-an-id"}],
        }))
        with pytest.raises(MetadataEncodingError):
            derive_metadata(feature)


class TestMetadataSummary:

    def test_populate_by_field_name_or_alias(self):
        by_name = MetadataSummary(name="A", country="US", hierarchy=[])
        by_alias = MetadataSummary(**{"wof:name": "A", "wof:country": "US", "wof:hierarchy": []})
        assert by_name == by_alias

    def test_to_json_is_compact(self):
        summary = MetadataSummary(name="A", country="US", hierarchy=[{"region_id": 1}])
        assert summary.to_json() == '{"wof:name":"A","wof:country":"US","wof:hierarchy":[{"region_id":1}]}'

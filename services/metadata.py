"""
Metadata Encoder.

Builds the compact summary stored in whosonfirst.meta: name, country and
hierarchy. A missing country is a recoverable default ("XX"); a summary
that cannot be validated or serialized is a hard error.

Exports:
    derive_metadata: Feature -> MetadataSummary
    encode_metadata: MetadataSummary -> JSON text
"""

from pydantic import ValidationError as PydanticValidationError

from config.defaults import IndexerDefaults
from core.models.feature import WOFFeature
from core.models.record import MetadataSummary
from exceptions import MetadataEncodingError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "MetadataEncoder")


def derive_metadata(feature: WOFFeature) -> MetadataSummary:
    """
    Raises:
        MetadataEncodingError: hierarchy or name fail validation
    """
    country = feature.string_property("wof:country")
    if country is None:
        logger.warning(f"FAILED to determine country for {feature.id}#meta")
        country = IndexerDefaults.UNKNOWN_COUNTRY

    try:
        return MetadataSummary(
            name=feature.name,
            country=country,
            hierarchy=feature.hierarchy,
        )
    except PydanticValidationError as e:
        logger.error(f"FAILED to build metadata for {feature.id}#meta because, {e}")
        raise MetadataEncodingError(f"invalid metadata for {feature.id}: {e}") from e


def encode_metadata(summary: MetadataSummary) -> str:
    """
    Raises:
        MetadataEncodingError: serialization failed
    """
    try:
        return summary.to_json()
    except (ValueError, TypeError) as e:
        logger.error(f"FAILED to marshal JSON for {summary.name} because, {e}")
        raise MetadataEncodingError(f"failed to serialize metadata: {e}") from e

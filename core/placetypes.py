"""
Who's On First Placetype Vocabulary.

Maps placetype names to the numeric ids stored in the placetype_id
column. Ids are the WOF placetype ids (themselves WOF records).

Exports:
    Placetype: One vocabulary entry
    PlacetypeRegistry: Name -> Placetype lookup
    get_placetype_by_name: Lookup against the default registry
"""

from typing import Dict, Iterable, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from exceptions import UnknownPlacetypeError


class Placetype(BaseModel):
    """One placetype vocabulary entry."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Numeric placetype id")
    name: str = Field(..., description="Placetype name, e.g. 'locality'")
    role: str = Field(..., description="common, common_optional or optional")


# (id, name, role)
_WOF_PLACETYPES = [
    (102312341, "planet", "common"),
    (102312309, "continent", "common"),
    (404528653, "ocean", "common_optional"),
    (136057795, "empire", "common_optional"),
    (102312307, "country", "common"),
    (102312335, "dependency", "common_optional"),
    (102312327, "disputed", "common_optional"),
    (404528655, "marinearea", "common_optional"),
    (404221409, "macroregion", "optional"),
    (102312311, "region", "common"),
    (404221413, "macrocounty", "optional"),
    (102312313, "county", "common_optional"),
    (404221411, "localadmin", "optional"),
    (102312317, "locality", "common"),
    (421205763, "borough", "optional"),
    (1108906905, "macrohood", "optional"),
    (102312319, "neighbourhood", "common"),
    (102312321, "microhood", "optional"),
    (102312331, "campus", "common_optional"),
    (102312329, "building", "optional"),
    (102312323, "address", "optional"),
    (102312325, "venue", "common_optional"),
    (421205765, "postalcode", "optional"),
    (102312333, "timezone", "common_optional"),
]


class PlacetypeRegistry:
    """
    Name -> Placetype lookup.

    Lookups are case-sensitive, matching the values found in wof:placetype.
    """

    def __init__(self, placetypes: Iterable[Placetype]):
        self._by_name: Dict[str, Placetype] = {}
        self._by_id: Dict[int, Placetype] = {}
        for pt in placetypes:
            self._by_name[pt.name] = pt
            self._by_id[pt.id] = pt

    @classmethod
    def default(cls) -> "PlacetypeRegistry":
        return cls(Placetype(id=i, name=n, role=r) for i, n, r in _WOF_PLACETYPES)

    def get_placetype_by_name(self, name: str) -> Placetype:
        """
        Raises:
            UnknownPlacetypeError: name is not in the vocabulary
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownPlacetypeError(f"invalid placetype '{name}'") from None

    def get_placetype_by_id(self, placetype_id: int) -> Optional[Placetype]:
        return self._by_id.get(placetype_id)

    def names(self) -> List[str]:
        return sorted(self._by_name)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)


_default_registry: Optional[PlacetypeRegistry] = None


def get_registry() -> PlacetypeRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = PlacetypeRegistry.default()
    return _default_registry


def get_placetype_by_name(name: str) -> Placetype:
    return get_registry().get_placetype_by_name(name)

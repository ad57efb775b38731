from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


Identifier = Union[str, int]


class LandSegment(BaseModel):
    model_config = ConfigDict(extra="allow")

    land_seg_id: Optional[Identifier] = None
    land_type_cd: Optional[str] = None
    land_type_desc: Optional[str] = None
    size_acres: Optional[float] = None
    land_area_factor: Optional[float] = None
    land_seg_mkt_val: Optional[float] = None
    land_val: Optional[float] = None
    prop_val_yr: Optional[int] = None


class Improvement(BaseModel):
    model_config = ConfigDict(extra="allow")

    improvement_id: Optional[Identifier] = None
    imprv_type_desc: Optional[str] = None
    imprv_val: Optional[float] = None
    yr_built: Optional[int] = None
    imprv_det_area: Optional[float] = None
    prop_num: Optional[Identifier] = None


class ParcelDetail(BaseModel):
    """Parcel attribute record returned by /api/details and /api/parcels.

    All fields are nullable. `not_found` marks a selection that resolved to no
    record; `error` carries the transport failure message when the lookup
    itself failed. Records built from rendered tile properties keep those
    properties as extra attributes.
    """

    model_config = ConfigDict(extra="allow")

    master_id: Optional[Identifier] = None
    prop_id: Optional[Identifier] = None

    address: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    situs_street_num: Optional[str] = None
    situs_street_name: Optional[str] = None
    geo_id: Optional[str] = None
    block: Optional[str] = None
    tract_or_lot: Optional[str] = None

    prop_type_cd: Optional[str] = None
    legal_desc: Optional[str] = None
    legal_loc_desc: Optional[str] = None
    legal_acreage: Optional[float] = None
    land_acres: Optional[float] = None

    market_value: Optional[float] = None
    curr_assessed_val: Optional[float] = None
    curr_land_val: Optional[float] = None
    curr_imprv_val: Optional[float] = None
    market_val: Optional[float] = None
    assessed_val: Optional[float] = None

    area_acres: Optional[float] = None
    land_segments: Optional[int] = None
    improvements: Optional[int] = None

    land_segments_list: List[LandSegment] = Field(default_factory=list)
    improvements_list: List[Improvement] = Field(default_factory=list)

    not_found: bool = False
    error: Optional[str] = None

    @classmethod
    def missing(cls, identifier: Any, error: Optional[str] = None) -> "ParcelDetail":
        return cls(master_id=identifier, not_found=True, error=error)

    @classmethod
    def from_properties(cls, properties: Optional[Dict[str, Any]]) -> "ParcelDetail":
        """Build a record from rendered vector-tile feature properties.

        Tile properties are loosely typed; values that do not validate against
        a declared field are dropped rather than failing the selection.
        """
        props = dict(properties or {})
        try:
            return cls.model_validate(props)
        except ValidationError as exc:
            bad = {err["loc"][0] for err in exc.errors() if err.get("loc")}
            return cls.model_validate({k: v for k, v in props.items() if k not in bad})

    def identifier(self) -> Optional[str]:
        value = self.master_id if self.master_id is not None else self.prop_id
        return None if value is None else str(value)


class DetailsResponse(BaseModel):
    details: Optional[ParcelDetail] = None
    note: Optional[str] = None

"""Brand Lab candidate builder."""

from __future__ import annotations

from .schema import BrandLabLegacyPayload, BrandLabV2Payload
from .translator import BRAND_FIELD_MAPPINGS, BrandLabBuilder, build_brand_candidates

__all__ = [
    "BRAND_FIELD_MAPPINGS",
    "BrandLabBuilder",
    "BrandLabLegacyPayload",
    "BrandLabV2Payload",
    "build_brand_candidates",
]

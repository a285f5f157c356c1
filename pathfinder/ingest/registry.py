from __future__ import annotations

from typing import TYPE_CHECKING

from .base import BaseSource
from .pagination import PaginationPolicy
from .sources.county_bursaries import CountyBursarySource
from .sources.ministry_of_education import MinistryOfEducationSource
from .sources.ngcdf import NgcdfSource

if TYPE_CHECKING:
    from pathfinder.config import PipelineSettings


def register_sources(settings: PipelineSettings | None = None) -> list[BaseSource]:
    if settings is None:
        return [MinistryOfEducationSource(), CountyBursarySource(), NgcdfSource()]

    policy = PaginationPolicy(max_pages=settings.max_pages)
    return [
        MinistryOfEducationSource(
            timeout_seconds=settings.ministry_timeout_seconds,
            probe_timeout_seconds=settings.portal_timeout_seconds,
            policy=policy,
        ),
        CountyBursarySource(timeout_seconds=settings.portal_timeout_seconds),
        NgcdfSource(timeout_seconds=settings.portal_timeout_seconds),
    ]

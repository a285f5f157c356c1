from __future__ import annotations

from .county_bursaries import CountyBursarySource
from .ministry_of_education import MinistryOfEducationSource
from .ngcdf import NgcdfSource

__all__ = ["CountyBursarySource", "MinistryOfEducationSource", "NgcdfSource"]

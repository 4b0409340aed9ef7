"""Guide dialect: Django admin change lists, change forms and submissions."""

from __future__ import annotations

from .admin import GuideAdminClient, parse_submit_errors
from .catalog import ADMIN_PATHS, GuideCatalogClient
from .listing import GuideList, parse_guide_list, parse_guide_metadata
from .parsers import (
    GUIDE_PARSERS,
    GuideItemParser,
    GuideMonsterParser,
    GuidePetParser,
    GuideSkillParser,
)

__all__ = [
    "ADMIN_PATHS",
    "GUIDE_PARSERS",
    "GuideAdminClient",
    "GuideCatalogClient",
    "GuideItemParser",
    "GuideList",
    "GuideMonsterParser",
    "GuidePetParser",
    "GuideSkillParser",
    "parse_guide_list",
    "parse_guide_metadata",
    "parse_submit_errors",
]

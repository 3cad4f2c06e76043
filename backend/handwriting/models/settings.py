# handwriting/models/settings.py
from enum import Enum

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from .base import WireModel
from .work import GridType


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class AppSettings(WireModel):
    """
    Singleton record of UI defaults. Not authorization sensitive.
    Unknown keys are preserved so newer clients do not lose preferences.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")

    id: int = 1
    grid_type: GridType = GridType.MI
    grid_size: int = 100  # pixels
    auto_recognize: bool = True
    compression_level: int = 5  # 0-9
    theme: Theme = Theme.LIGHT
    data_version: int = 0  # Highest one-shot data migration already applied

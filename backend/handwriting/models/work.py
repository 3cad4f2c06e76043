# handwriting/models/work.py
from enum import Enum
from typing import Dict, Optional

from pydantic import Field

from .base import WireModel, Visibility, new_id, now_ms


class WorkStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


class GridType(str, Enum):
    MI = "mi"
    TIAN = "tian"
    HUI = "hui"
    NONE = "none"


class Layout(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class CharAdjustment(WireModel):
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0


class Work(WireModel):
    """
    A composed text whose character positions may reference specific samples.

    ``char_styles`` maps a content position to the id of one of the owner's
    samples. ``status`` is owned by the publication workflow and ``score`` by
    the rating aggregator; values supplied by callers are ignored.
    """
    id: str = Field(default_factory=new_id)
    user_id: Optional[str] = None
    title: str = ""
    author: str = ""
    content: str = ""
    char_styles: Dict[int, str] = Field(default_factory=dict)
    char_adjustments: Dict[int, CharAdjustment] = Field(default_factory=dict)
    layout: Layout = Layout.HORIZONTAL
    grid_type: Optional[GridType] = GridType.MI
    visibility: Visibility = Visibility.PRIVATE
    status: WorkStatus = WorkStatus.DRAFT
    is_refined: bool = False
    score: Optional[float] = None
    author_deleted: bool = False
    origin_work_id: Optional[str] = None  # Set when cloned from a collected public work
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

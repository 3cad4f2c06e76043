# handwriting/models/sample.py
from typing import List, Optional

from pydantic import Field

from .base import WireModel, Visibility, new_id, now_ms


class CharacterSample(WireModel):
    """
    One handwritten instance of a character contributed by a user.

    The rendering payload (svg path, viewBox, thumbnail) comes from the capture
    pipeline and is opaque here. ``score`` is derived from community ratings and
    is never taken from the caller.
    """
    id: str = Field(default_factory=new_id)
    user_id: Optional[str] = None  # Owner; stamped by the policy on create
    char: str
    svg_path: str = ""
    svg_view_box: str = ""
    thumbnail: str = ""  # Base64 WebP
    rating: int = 0  # Owner's self assessment (1-5), informational only
    score: Optional[float] = None
    is_adjusted: bool = False
    is_refined: bool = False
    visibility: Visibility = Visibility.PRIVATE  # Only meaningful for admin-owned samples
    created_at: int = Field(default_factory=now_ms)
    tags: List[str] = Field(default_factory=list)

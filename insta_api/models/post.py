# insta_api/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any

from insta_api.utils.datetime_utils import DateTimeUtils


class MediaType(Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass
class Media:
    type: str
    url: str


@dataclass
class Share:
    """One entry of Post.shares. The same user may share a post more than once."""
    user_id: str
    date: datetime = field(default_factory=DateTimeUtils.now)


@dataclass
class Post:
    """
    Firestore 'posts' collection document.
    `slug` is derived from the caption at creation time and is unique across posts.
    """
    post_id: str
    user_id: str
    caption: str
    media: List[Dict[str, Any]]
    slug: str
    likes: List[str] = field(default_factory=list)
    shares: List[Dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

# insta_api/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List

from insta_api.utils.datetime_utils import DateTimeUtils


@dataclass
class Reply:
    """A reply nested in Comment.replies. `reply_id` is unique within its parent comment only."""
    reply_id: str
    user_id: str
    content: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)


@dataclass
class Comment:
    """
    Firestore 'comments' collection document.
    """
    comment_id: str
    user_id: str
    post_id: str
    content: str
    likes: List[str] = field(default_factory=list)
    replies: List[Dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

# insta_api/models/user.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from insta_api.utils.datetime_utils import DateTimeUtils


@dataclass
class User:
    """
    Firestore 'users' collection document.
    `followers` / `followings` hold user ids and behave as sets.
    """
    user_id: str
    username: str
    email: str
    password: str          # hashed, never the plaintext
    full_name: str
    google_id: Optional[str] = None
    profile_image: str = ''
    bio: str = ''
    date_of_birth: Optional[datetime] = None
    gender: str = ''
    current_city: str = ''
    hometown: str = ''     # exposed as "from"
    followers: List[str] = field(default_factory=list)
    followings: List[str] = field(default_factory=list)
    tick: bool = False
    is_admin: bool = False
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

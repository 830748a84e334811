from authapi.models.token_pair import TokenPair
from authapi.models.user import User

__all__ = [
    "TokenPair",
    "User",
]

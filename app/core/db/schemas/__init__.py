# Import models so Base metadata is aware of them
from .auth import User  # noqa: F401
from .flashcards import Folder, Card  # noqa: F401
from .user_profile import UserProfile  # noqa: F401

from models.base_model import Base, as_utc, utcnow
from models.user import User
from models.refresh_token import RefreshToken
from models.db_storage import DBStorage

__all__ = ["Base", "User", "RefreshToken", "DBStorage", "as_utc", "utcnow"]

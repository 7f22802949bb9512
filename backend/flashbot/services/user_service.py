from flashbot.core.clock import utcnow
from flashbot.db.session import SessionLocal, session_scope
from flashbot.models.user import User

PROFILE_FIELDS = ("username", "first_name", "last_name")


class UserService:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def find_or_create(self, owner_key: int, profile: dict | None = None) -> User:
        """Найти пользователя по owner_key или создать. Существующему обновляется last_activity."""
        profile = {k: v for k, v in (profile or {}).items() if k in PROFILE_FIELDS and v is not None}

        with session_scope(self.session_factory) as db:
            user = db.query(User).filter(User.owner_key == owner_key).first()
            if user is None:
                user = User(owner_key=owner_key, **profile)
                db.add(user)
            else:
                for field, value in profile.items():
                    setattr(user, field, value)
                user.last_activity = utcnow()
            db.flush()
            return user

    def find_by_owner_key(self, owner_key: int) -> User | None:
        with session_scope(self.session_factory) as db:
            return db.query(User).filter(User.owner_key == owner_key).first()

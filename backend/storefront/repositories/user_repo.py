from typing import Optional

from sqlalchemy.orm import Session

from storefront.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: Optional[str]) -> Optional[User]:
        if not email:
            return None
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def create(self, name: str, email: str, role: str = "user") -> User:
        u = User(name=name, email=email.strip().lower(), role=role)
        self.db.add(u)
        self.db.flush()
        return u

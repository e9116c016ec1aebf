from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adaptive_auth.models.user import User
from adaptive_auth.utils.helpers import parse_user_id
import logging

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    def ensure_user(
        db: Session,
        user_id: str,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> User:
        """Return the local mirror of an IdP subject, creating it on first sight."""
        user_id = parse_user_id(user_id)
        user = db.query(User).filter(User.id == user_id).first()
        if user:
            changed = False
            if email and user.email != email:
                user.email = email
                changed = True
            if username and user.username != username:
                user.username = username
                changed = True
            if changed:
                db.commit()
                db.refresh(user)
            return user

        user = User(id=user_id, email=email, username=username, is_active=True)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            user = db.query(User).filter(User.id == user_id).first()
            if user is None:
                raise
            return user
        db.refresh(user)
        logger.info(f"Registered identity {user_id}")
        return user

"""User & association repository.

All reads hydrate subjects, connections and reviews together. Writes commit
before returning and roll back on any database error.
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from backend.auth.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from backend.core.errors import BadInput, Conflict, NotFound, Unauthorized
from backend.models.review import Review
from backend.models.subject import Subject
from backend.models.user import User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('first_name', 'last_name', 'email', 'phone', 'about', 'rating', 'grade')
UPDATABLE_FIELDS = ('username', 'password', 'is_tutor', *PROFILE_FIELDS)
NON_NULLABLE_FIELDS = ('username', 'password', 'is_tutor')


def validate_username(username) -> str:
    if not isinstance(username, str) or not username.strip():
        raise BadInput('Username is required')
    return username


def validate_password(password) -> str:
    if not isinstance(password, str) or not password:
        raise BadInput('Password is required')
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise BadInput(f'Password must be {MAX_PASSWORD_BYTES} bytes or fewer')
    return password


class UserRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _query(self):
        return self.db.query(User).options(
            selectinload(User.subjects),
            selectinload(User.connections),
            selectinload(User.reviews),
        )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _username_taken(self, username: str, exclude_id: int | None = None) -> bool:
        query = self.db.query(User.id).filter(User.username == username)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def register(self, username: str, password: str, is_tutor: bool = False, **profile) -> User:
        unknown = set(profile) - set(PROFILE_FIELDS)
        if unknown:
            raise BadInput(f"Unknown fields: {', '.join(sorted(unknown))}")
        validate_username(username)
        validate_password(password)

        if self._username_taken(username):
            raise Conflict('Username already exists')

        user = User(
            username=username,
            password=hash_password(password),
            is_tutor=bool(is_tutor),
            **profile,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same name.
            self.db.rollback()
            raise Conflict('Username already exists') from exc
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info('Registered user %s (id=%s)', username, user.id)
        return self.get(user.id)

    def get(self, user_id: int) -> User:
        user = self._query().filter(User.id == user_id).first()
        if user is None:
            raise NotFound('User not found')
        return user

    def get_by_username(self, username: str) -> User:
        user = self._query().filter(User.username == username).first()
        if user is None:
            raise NotFound('User not found')
        return user

    def list(self) -> list[User]:
        return self._query().order_by(User.id).all()

    def authenticate(self, username: str, password: str) -> User:
        user = self.db.query(User).filter(User.username == username).first()
        if user is None or not verify_password(password, user.password):
            logger.info('Failed login for username %s', username)
            raise Unauthorized('Invalid username or password')
        return self.get(user.id)

    def update(self, user_id: int, fields: dict) -> User:
        user = self.get(user_id)

        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise BadInput(f"Unknown fields: {', '.join(sorted(unknown))}")
        for name in NON_NULLABLE_FIELDS:
            if name in fields and fields[name] is None:
                raise BadInput(f'{name} cannot be null')

        changes = dict(fields)
        if 'username' in changes:
            validate_username(changes['username'])
            if changes['username'] != user.username and self._username_taken(changes['username'], user.id):
                raise Conflict('Username already exists')
        # Anything other than the stored hash itself is a new plaintext password.
        if 'password' in changes and changes['password'] != user.password:
            changes['password'] = hash_password(validate_password(changes['password']))

        for name, value in changes.items():
            setattr(user, name, value)

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise Conflict('Username already exists') from exc
        except SQLAlchemyError:
            self.db.rollback()
            raise

        return self.get(user_id)

    def delete(self, user_id: int) -> User:
        user = self.get(user_id)
        username = user.username
        # Received reviews, subject links and both connection directions go
        # with the user; authored reviews are kept with reviewer_id nulled.
        self.db.delete(user)
        self._commit()
        logger.info('Deleted user %s (id=%s)', username, user_id)
        return user

    def _find_subject(self, name: str) -> Subject | None:
        return self.db.query(Subject).filter(Subject.name == name).first()

    def add_subject(self, user_id: int, name: str) -> Subject:
        user = self.get(user_id)
        if not isinstance(name, str) or not name.strip():
            raise BadInput('Subject name is required')

        subject = self._find_subject(name)
        if subject is None:
            self.db.add(Subject(name=name))
            try:
                self.db.commit()
            except IntegrityError:
                # Another request created the same subject first; reuse it.
                self.db.rollback()
            except SQLAlchemyError:
                self.db.rollback()
                raise
            subject = self._find_subject(name)
            if subject is None:
                raise NotFound('Subject not found')

        if subject not in user.subjects:
            user.subjects.append(subject)
            try:
                self.db.commit()
            except IntegrityError:
                # The link was added concurrently; the end state is the same.
                self.db.rollback()
            except SQLAlchemyError:
                self.db.rollback()
                raise

        return subject

    def remove_subject(self, user_id: int, subject_id: int) -> Subject:
        user = self.get(user_id)
        subject = next((s for s in user.subjects if s.id == subject_id), None)
        if subject is None:
            raise NotFound('Subject not found for user')
        user.subjects.remove(subject)
        self._commit()
        return subject

    def add_connection(self, user_id: int, other_id: int) -> User:
        if user_id == other_id:
            raise BadInput('Users cannot connect to themselves')
        user = self.get(user_id)
        other = self.get(other_id)

        if other not in user.connections:
            user.connections.append(other)
        if user not in other.connections:
            other.connections.append(user)
        self._commit()
        return self.get(other_id)

    def remove_connection(self, user_id: int, other_id: int) -> User:
        user = self.get(user_id)
        other = self.get(other_id)
        if other not in user.connections and user not in other.connections:
            raise NotFound('Connection not found')

        if other in user.connections:
            user.connections.remove(other)
        if user in other.connections:
            other.connections.remove(user)
        self._commit()
        return self.get(other_id)

    def add_review(
        self,
        user_id: int,
        rating: float | None,
        content: str | None = None,
        reviewer_id: int | None = None,
    ) -> Review:
        user = self.get(user_id)
        if reviewer_id is not None:
            if reviewer_id == user_id:
                raise BadInput('Users cannot review themselves')
            self.get(reviewer_id)

        review = Review(user_id=user.id, reviewer_id=reviewer_id, rating=rating, content=content)
        self.db.add(review)
        self._commit()
        self.db.refresh(review)
        return review

    def set_picture(self, user_id: int, filename: str) -> User:
        user = self.get(user_id)
        user.picture = filename
        self._commit()
        return self.get(user_id)

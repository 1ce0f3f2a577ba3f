"""User model definitions."""

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from backend.database import Base


user_subjects = Table(
    "user_subjects",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)

# Stored in both directions; see UserRepository.add_connection.
user_connections = Table(
    "user_connections",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("connection_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """Represents a tutor or a student."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # bcrypt hash
    is_tutor = Column(Boolean, nullable=False, default=False)
    first_name = Column(String)
    last_name = Column(String)
    email = Column(String)
    phone = Column(String)
    about = Column(Text)
    rating = Column(Float)
    grade = Column(Integer)
    picture = Column(String)

    subjects = relationship(
        "Subject",
        secondary=user_subjects,
        back_populates="users",
        order_by="Subject.id",
    )
    connections = relationship(
        "User",
        secondary=user_connections,
        primaryjoin=id == user_connections.c.user_id,
        secondaryjoin=id == user_connections.c.connection_id,
        back_populates="connected_by",
        order_by="User.id",
    )
    connected_by = relationship(
        "User",
        secondary=user_connections,
        primaryjoin=id == user_connections.c.connection_id,
        secondaryjoin=id == user_connections.c.user_id,
        back_populates="connections",
    )
    reviews = relationship(
        "Review",
        foreign_keys="Review.user_id",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Review.id",
    )
    reviews_written = relationship(
        "Review",
        foreign_keys="Review.reviewer_id",
        back_populates="reviewer",
    )

    def __repr__(self):
        return f"<User id={self.id} username={self.username!r}>"

"""Subject model definitions."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base


class Subject(Base):
    """A subject shared by every user tagged with it, unique by exact name."""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)

    users = relationship("User", secondary="user_subjects", back_populates="subjects")

    def __repr__(self):
        return f"<Subject {self.name}>"

"""
User and Student models - identity lives with the auth service,
these rows are the local reference to it
"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship

from career_profiling.database import Base
from career_profiling.models.types import StrictBoolean
from career_profiling.utils.datetime_utils import utc_now


class UserRole(str, enum.Enum):
    STUDENT = "STUDENT"
    COUNSELLOR = "COUNSELLOR"
    ADMIN = "ADMIN"


class User(Base):
    """
    Users table - one row per account, role-gated
    """
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    role = Column(SAEnum(UserRole, native_enum=False, length=20), nullable=False, default=UserRole.STUDENT)
    is_active = Column(StrictBoolean(), nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    
    student_profile = relationship("Student", back_populates="user", uselist=False)
    
    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Student(Base):
    """
    Student profile - required before a test attempt can start
    """
    __tablename__ = "students"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    school_name = Column(String(255))
    grade = Column(String(20))
    created_at = Column(DateTime, nullable=False, default=utc_now)
    
    user = relationship("User", back_populates="student_profile")
    
    def __repr__(self):
        return f"<Student(id={self.id}, user_id={self.user_id})>"

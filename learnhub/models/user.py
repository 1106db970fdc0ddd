from sqlalchemy import Column, Integer, String
from ..core.database import Base
from ..core.policy import Role


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.STUDENT.value)
    name = Column(String, nullable=False)

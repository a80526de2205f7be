from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from fitplan.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False)

    profile = relationship("UserProfile", back_populates="user", uselist=False)

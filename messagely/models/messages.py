from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from . import Base


class Message(Base):
    __tablename__ = 'messages'
    id = Column(Integer, primary_key=True, autoincrement=True)
    from_username = Column(String(150), ForeignKey('users.username', ondelete='CASCADE'), index=True, nullable=False)
    to_username = Column(String(150), ForeignKey('users.username', ondelete='CASCADE'), index=True, nullable=False)
    body = Column(Text, nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False, index=True)
    # null until the recipient reads it, then fixed
    read_at = Column(DateTime(timezone=True), nullable=True)

    from_user = relationship('User', foreign_keys=[from_username], lazy='raise')
    to_user = relationship('User', foreign_keys=[to_username], lazy='raise')

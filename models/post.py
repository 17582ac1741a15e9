from sqlalchemy import Column, String, Integer, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Post(BaseModel, Base):
    __tablename__ = "posts"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    # denormalized count of post_likes rows; maintained by services.likes
    like_count = Column(Integer, nullable=False, default=0, server_default="0")

    user = relationship("User")

    __table_args__ = (
        CheckConstraint("like_count >= 0", name="ck_posts_like_count_nonnegative"),
    )

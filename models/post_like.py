"""
PostLike model: the like ledger.
One row per (user, post) pair; the unique constraint is what makes
concurrent duplicate likes detectable (IntegrityError on insert).
Fields:
- user_id (String(36)) - FK to users.id
- post_id (String(36)) - FK to posts.id
- created_at
"""
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from models.base_model import BaseModel, Base


class PostLike(BaseModel, Base):
    __tablename__ = "post_likes"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)

    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_post_likes_user_post"),)

    def __repr__(self):
        return f"<PostLike user={self.user_id} post={self.post_id}>"

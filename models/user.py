from models.base_model import Base, BaseModel
from sqlalchemy import Column, String


class User(BaseModel, Base):
    __tablename__ = "users"
    username = Column(String(255), nullable=False)
    # stored lower-cased; lookups normalize the same way
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    # digest of the single currently valid refresh token; NULL means no session
    refresh_token_hash = Column(String(255), nullable=True)
    google_id = Column(String(255), nullable=True, unique=True, index=True)
    facebook_id = Column(String(255), nullable=True, unique=True, index=True)

    @property
    def has_session(self) -> bool:
        return self.refresh_token_hash is not None

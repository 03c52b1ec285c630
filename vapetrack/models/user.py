from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Text

from ..db.session import Base

ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"
ROLES = (ROLE_ADMIN, ROLE_STAFF)


class ManagedUser(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    email = Column(Text, nullable=True, unique=True)
    contact_number = Column(Text, nullable=True)
    role = Column(Text, nullable=False, default=ROLE_STAFF)
    password_hash = Column(Text, nullable=False)
    # The admin created during initialization; cannot be deleted.
    is_owner = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)
    added_by = Column(Text, nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

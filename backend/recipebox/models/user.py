"""
RecipeBox Backend — User Table
================================

What:  ORM definition of the `users` table.
Who:   Used by Database.create_tables() and by test fixtures. Route handlers
       query it only through the Query Catalog.

Table Design:
    - user_id: integer primary key (the Auth Gate stores it in the session)
    - username / email: unique, enforced by the store (→ 409 on collision)
    - password: bcrypt hash; never part of a public projection
    - is_admin: informational flag, no admin routes exist
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, false, text
from sqlalchemy.orm import Mapped, mapped_column

from recipebox.database import Base


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # bcrypt output is 60 characters
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, username='{self.username}')>"

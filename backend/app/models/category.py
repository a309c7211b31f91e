"""
Performer categories (Magicians, DJs, ...) and the performer/category link table.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(String(500), nullable=True)
    icon_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    performers = relationship("PerformerCategory", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug={self.slug})>"


class PerformerCategory(Base):
    __tablename__ = "performer_categories"

    id = Column(Integer, primary_key=True)
    performer_id = Column(Integer, ForeignKey("performers.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    is_primary = Column(Boolean, nullable=False, default=False)

    performer = relationship("Performer", back_populates="categories")
    category = relationship("Category", back_populates="performers", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("performer_id", "category_id", name="uq_performer_category"),
    )

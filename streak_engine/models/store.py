from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from streak_engine.db.base import Base
from streak_engine.models.token_transaction import TokenType


class StoreCategory(str, enum.Enum):
    streak_tools = "streak_tools"
    power_ups = "power_ups"
    customization = "customization"
    charity = "charity"


class StoreItem(Base):
    __tablename__ = "store_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(
        Enum(StoreCategory, name="store_category_enum"), nullable=False
    )
    token_type: Mapped[str] = mapped_column(
        Enum(TokenType, name="token_type_enum"), nullable=False
    )
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    icon_emoji: Mapped[str | None] = mapped_column(String(10), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class UserPurchase(Base):
    __tablename__ = "user_purchases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    store_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("store_items.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    token_type: Mapped[str] = mapped_column(
        Enum(TokenType, name="token_type_enum"), nullable=False
    )
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    store_item: Mapped[StoreItem] = relationship(lazy="joined")

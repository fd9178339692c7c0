from sqlalchemy import Column, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import relationship
from .database import Base


class Recipe(Base):
    """Recipe with a selling price and an optional measured yield"""
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)  # selling price
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # Yield, filled in after a batch has been produced
    final_yield_weight_grams = Column(Numeric(10, 2), nullable=True)
    serving_portions = Column(Integer, nullable=True)

    # Lines are removed by the store's ON DELETE CASCADE
    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from .database import Base


class RecipeIngredient(Base):
    """Association object between Recipe and Ingredient.
    Stores the quantity (and the unit it is expressed in) for each ingredient in each recipe"""
    __tablename__ = "recipe_ingredients"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), primary_key=True, index=True)

    quantity = Column(Numeric(12, 3), nullable=False)
    unit = Column(String(20), nullable=False)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    ingredient = relationship("Ingredient")
